from __future__ import annotations

import json
from datetime import datetime, timezone

import typer

from concerto_links.cache.sqlite import SqliteStorage
from concerto_links.cache.store import LinkCache
from concerto_links.config import TRACK_SEARCH_CHOICES, load_config, save_config_track_search
from concerto_links.errors import CallerContractViolation, ProviderTransientFailure, StorageUnavailable
from concerto_links.links.service import LinkService
from concerto_links.links.songlink import SongLinkSource
from concerto_links.links.types import LinkRecord
from concerto_links.logging_setup import setup_logging


app = typer.Typer(no_args_is_help=True, add_completion=False)


def _echo_record(record: LinkRecord, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
        return
    typer.echo(f"Spotify:     {record.spotify_url or '-'}")
    typer.echo(f"Apple Music: {record.apple_music_url or '-'}")
    typer.echo(f"Lyrics:      {record.lyrics_url or '-'}")
    typer.echo(f"Status:      {record.status.value}")


@app.command()
def links(
    artist: str = typer.Argument("", help="Artist name"),
    title: str = typer.Argument("", help="Song title"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """
    Streaming and lyrics links for a song (cached after the first lookup).
    """
    setup_logging(debug)
    cfg = load_config()
    service = LinkService.from_config(cfg)
    try:
        record = service.get_links_for(artist, title)
    except CallerContractViolation as e:
        raise typer.BadParameter(str(e)) from e
    finally:
        service.close()
    _echo_record(record, json_output)


@app.command()
def crosslink(
    url: str = typer.Argument(..., help="Track URL on any supported platform"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Resolve one track URL to Spotify/Apple Music (no cache)."""
    cfg = load_config()
    src = SongLinkSource(
        timeout_s=cfg.provider_timeout_s,
        max_retries=cfg.api_max_retries,
        backoff_base_s=cfg.api_backoff_base_s,
    )
    try:
        res = src.resolve_url(url)
    except ProviderTransientFailure as e:
        typer.echo(f"Lookup failed: {e}", err=True)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps({"spotify_url": res.spotify_url, "apple_music_url": res.apple_music_url}, indent=2))
    else:
        typer.echo(f"Spotify:     {res.spotify_url or '-'}")
        typer.echo(f"Apple Music: {res.apple_music_url or '-'}")


@app.command()
def cache(
    clear: bool = typer.Option(False, "--clear", help="Clear the link cache"),
    show: bool = typer.Option(False, "--show", help="List cached songs"),
):
    """Manage the link cache."""
    cfg = load_config()
    link_cache = LinkCache(SqliteStorage(cfg.cache_db_path))

    if clear:
        try:
            link_cache.clear()
        except StorageUnavailable as e:
            typer.echo(f"Cache is busy, try again: {e}", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Cache cleared: {cfg.cache_db_path}")
    elif show:
        for key, record in link_cache.items():
            typer.echo(f"{key}  [{record.status.value}]")
        typer.echo(f"{len(link_cache)} entries in {cfg.cache_db_path}")
    else:
        typer.echo("Use --clear to clear the cache or --show to list it")


@app.command()
def config(
    track_search: str | None = typer.Option(
        None, "--track-search", help=f"Track search provider: {'|'.join(TRACK_SEARCH_CHOICES)}"
    ),
):
    """Show settings, or persist the track search provider."""
    if track_search is not None:
        try:
            save_config_track_search(track_search)
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
    cfg = load_config()
    typer.echo(f"track_search={cfg.track_search}")
    typer.echo(f"provider_timeout_s={cfg.provider_timeout_s}")
    typer.echo(f"resolve_ceiling_s={cfg.resolve_ceiling_s}")
    typer.echo(f"unresolved_retry_after_s={cfg.unresolved_retry_after_s}")
    typer.echo(f"cache_db_path={cfg.cache_db_path}")


@app.command()
def health():
    """Liveness probe."""
    typer.echo(
        json.dumps({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")})
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
