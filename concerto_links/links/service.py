from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

from concerto_links.cache.sqlite import SqliteStorage
from concerto_links.cache.store import LinkCache
from concerto_links.config import AppConfig

from .base import LinkSource, TrackSearchSource
from .itunes import ITunesSearchSource
from .lyrics_ovh import LyricsOvhSource
from .resolver import LinkResolver, validate_song
from .songlink import SongLinkSource
from .spotify import SpotifySearchSource
from .types import LinkRecord, LinkStatus

logger = logging.getLogger(__name__)


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class LinkService:
    """
    Entry point for the UI: cached links for a song, resolving on a miss.

    Records that are resolved or partially resolved are served from cache
    forever. Unresolved ones are retried once ``unresolved_retry_after_s``
    seconds have passed since they were fetched; 0 retries on every request.
    """

    def __init__(
        self,
        resolver: LinkResolver,
        cache: LinkCache,
        *,
        unresolved_retry_after_s: float = 0.0,
        clock: Callable[[], float] = time.time,
    ):
        self.resolver = resolver
        self.cache = cache
        self.unresolved_retry_after_s = unresolved_retry_after_s
        self.clock = clock
        self._key_locks: dict[str, _KeyLock] = {}
        self._key_locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, cfg: AppConfig) -> LinkService:
        cache = LinkCache(SqliteStorage(cfg.cache_db_path))
        cache.load()
        resolver = LinkResolver(
            _build_track_search(cfg),
            _build_link_sources(cfg),
            provider_timeout_s=cfg.provider_timeout_s,
            ceiling_s=cfg.resolve_ceiling_s,
        )
        return cls(resolver, cache, unresolved_retry_after_s=cfg.unresolved_retry_after_s)

    def close(self) -> None:
        self.resolver.close()

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        with self._key_locks_guard:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._key_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    def _is_fresh(self, record: LinkRecord) -> bool:
        if record.status is not LinkStatus.UNRESOLVED:
            return True
        if self.unresolved_retry_after_s <= 0:
            return False
        return self.clock() - record.fetched_at < self.unresolved_retry_after_s

    def get_links_for(self, artist: str | None, title: str | None) -> LinkRecord:
        query = validate_song(artist, title)
        key = query.key

        cached = self.cache.get(key)
        if cached is not None and self._is_fresh(cached):
            logger.debug("Cache hit for %s (%s)", query.display, cached.status.value)
            return cached

        # One resolution per key at a time; late arrivals pick up its result.
        with self._key_lock(key):
            cached = self.cache.get(key)
            if cached is not None and self._is_fresh(cached):
                return cached

            if cached is None:
                logger.debug("Cache miss for %s", query.display)
            else:
                logger.debug("Retrying unresolved %s", query.display)
            record = self.resolver.resolve(query.artist, query.title)
            self.cache.put(key, record)
            return record


def _build_track_search(cfg: AppConfig) -> TrackSearchSource:
    http_kwargs = dict(
        timeout_s=cfg.provider_timeout_s,
        max_retries=cfg.api_max_retries,
        backoff_base_s=cfg.api_backoff_base_s,
    )
    if cfg.track_search == "spotify":
        if cfg.spotify_client_id and cfg.spotify_client_secret:
            return SpotifySearchSource(
                client_id=cfg.spotify_client_id,
                client_secret=cfg.spotify_client_secret,
                limit=cfg.search_limit,
                **http_kwargs,
            )
        logger.warning("Spotify track search selected but SPOTIFY_CLIENT_ID/SECRET not set, using iTunes")
    elif cfg.track_search != "itunes":
        logger.info("Unknown track search '%s' in config, using iTunes", cfg.track_search)
    return ITunesSearchSource(limit=cfg.search_limit, **http_kwargs)


def _build_link_sources(cfg: AppConfig) -> list[LinkSource]:
    http_kwargs = dict(
        timeout_s=cfg.provider_timeout_s,
        max_retries=cfg.api_max_retries,
        backoff_base_s=cfg.api_backoff_base_s,
    )
    return [SongLinkSource(**http_kwargs), LyricsOvhSource(**http_kwargs)]
