from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout, wait
from typing import Callable, Sequence

from concerto_links.errors import CallerContractViolation

from .base import LinkSource, TrackSearchSource
from .types import LinkRecord, ProviderResult, SongQuery, TrackRef

logger = logging.getLogger(__name__)

_MERGED_FIELDS = ("spotify_url", "apple_music_url", "lyrics_url")


def validate_song(artist: str | None, title: str | None) -> SongQuery:
    artist = (artist or "").strip()
    title = (title or "").strip()
    if not artist and not title:
        raise CallerContractViolation("artist and title are both empty; at least a title is required")
    return SongQuery(artist=artist, title=title)


def merge_results(results: Sequence[ProviderResult], fetched_at: float) -> LinkRecord:
    """Take each field from the first result that supplies it."""
    merged: dict[str, str | None] = dict.fromkeys(_MERGED_FIELDS)
    for res in results:
        for field in _MERGED_FIELDS:
            value = getattr(res, field)
            if value and merged[field] is None:
                merged[field] = value
    return LinkRecord(fetched_at=fetched_at, **merged)


class LinkResolver:
    """
    Turns (artist, title) into a LinkRecord:
    track search -> parallel link sources -> merge.

    Provider failures and timeouts never escape; they leave fields null.
    Waiting on link sources stops after ``ceiling_s``; stragglers keep running
    in the pool but their results are dropped.
    """

    def __init__(
        self,
        track_search: TrackSearchSource,
        link_sources: Sequence[LinkSource],
        *,
        provider_timeout_s: float = 5.0,
        ceiling_s: float = 8.0,
        clock: Callable[[], float] = time.time,
        max_workers: int | None = None,
    ):
        self.track_search = track_search
        self.link_sources = list(link_sources)
        self.provider_timeout_s = provider_timeout_s
        self.ceiling_s = ceiling_s
        self.clock = clock
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers or max(4, 2 * (len(self.link_sources) + 1)),
            thread_name_prefix="concerto-links",
        )

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> LinkResolver:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def resolve(self, artist: str | None, title: str | None) -> LinkRecord:
        query = validate_song(artist, title)

        track = self._find_track(query)
        if track is None:
            logger.info("No canonical track for %s", query.display)
            return LinkRecord.unresolved(self.clock())
        logger.debug("Canonical track for %s: %s (%s)", query.display, track.url, track.source)

        results = self._collect_links(query, track)
        record = merge_results(results, self.clock())
        logger.info("Resolved %s: %s", query.display, record.status.value)
        return record

    def _find_track(self, query: SongQuery) -> TrackRef | None:
        fut = self._pool.submit(self.track_search.search, query)
        try:
            return fut.result(timeout=self.provider_timeout_s)
        except FutureTimeout:
            logger.warning("%s timed out after %.1fs for %s", self.track_search.name, self.provider_timeout_s, query.display)
        except Exception as e:
            logger.warning("%s failed for %s: %s", self.track_search.name, query.display, e)
        return None

    def _collect_links(self, query: SongQuery, track: TrackRef) -> list[ProviderResult]:
        futures: dict[Future, LinkSource] = {
            self._pool.submit(src.lookup, query, track): src for src in self.link_sources
        }
        done, not_done = wait(futures, timeout=self.ceiling_s)
        for fut in not_done:
            logger.warning(
                "%s still pending after %.1fs for %s, dropping it",
                futures[fut].name,
                self.ceiling_s,
                query.display,
            )

        # Keep source order so the merge is deterministic.
        results: list[ProviderResult] = []
        for fut, src in futures.items():
            if fut not in done:
                continue
            try:
                results.append(fut.result())
            except Exception as e:
                logger.warning("%s failed for %s: %s", src.name, query.display, e)
        return results
