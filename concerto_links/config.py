from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TRACK_SEARCH_CHOICES = ("itunes", "spotify")


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "concerto-links"
    return Path.home() / ".config" / "concerto-links"


def _config_file() -> Path:
    return _config_dir() / "config.json"


@dataclass(frozen=True)
class AppConfig:
    # Storage
    data_dir: Path
    cache_db_path: Path
    config_dir: Path

    # Providers
    track_search: str
    provider_timeout_s: float
    resolve_ceiling_s: float
    api_max_retries: int
    api_backoff_base_s: float
    search_limit: int
    spotify_client_id: str | None
    spotify_client_secret: str | None

    # Cache policy
    unresolved_retry_after_s: float


def load_config() -> AppConfig:
    # XDG base dir fallback
    xdg = os.getenv("XDG_CACHE_HOME")
    data_dir = Path(xdg) if xdg else Path.home() / ".cache"
    data_dir = data_dir / "concerto-links"

    config_dir = _config_dir()

    return AppConfig(
        data_dir=data_dir,
        cache_db_path=data_dir / "cache.sqlite3",
        config_dir=config_dir,
        track_search=_load_track_search(config_dir),
        provider_timeout_s=float(os.getenv("CONCERTO_LINKS_PROVIDER_TIMEOUT", "5.0")),
        resolve_ceiling_s=float(os.getenv("CONCERTO_LINKS_RESOLVE_CEILING", "8.0")),
        api_max_retries=max(1, int(os.getenv("CONCERTO_LINKS_API_MAX_RETRIES", "1"))),
        api_backoff_base_s=float(os.getenv("CONCERTO_LINKS_API_BACKOFF_BASE", "0.5")),
        search_limit=int(os.getenv("CONCERTO_LINKS_SEARCH_LIMIT", "5")),
        spotify_client_id=os.getenv("SPOTIFY_CLIENT_ID") or None,
        spotify_client_secret=os.getenv("SPOTIFY_CLIENT_SECRET") or None,
        unresolved_retry_after_s=float(os.getenv("CONCERTO_LINKS_UNRESOLVED_RETRY_AFTER", "0")),
    )


def _read_config_file(cfg_path: Path) -> dict:
    if not cfg_path.exists():
        return {}
    try:
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", cfg_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _load_track_search(config_dir: Path) -> str:
    # Priority: config.json → CONCERTO_LINKS_TRACK_SEARCH → "itunes"
    raw = _read_config_file(config_dir / "config.json").get("track_search")
    if isinstance(raw, str) and raw.strip().lower() in TRACK_SEARCH_CHOICES:
        return raw.strip().lower()
    env_value = (os.getenv("CONCERTO_LINKS_TRACK_SEARCH") or "").strip().lower()
    if env_value in TRACK_SEARCH_CHOICES:
        return env_value
    return "itunes"


def save_config_track_search(value: str) -> None:
    value = value.strip().lower()
    if value not in TRACK_SEARCH_CHOICES:
        raise ValueError(f"track_search must be one of: {', '.join(TRACK_SEARCH_CHOICES)}")
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = _read_config_file(cfg_path)
    data["track_search"] = value
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
