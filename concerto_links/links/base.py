from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import requests

from concerto_links.errors import ProviderTransientFailure
from concerto_links.normalize import normalize

from .types import ProviderResult, SongQuery, TrackCandidate, TrackRef

logger = logging.getLogger(__name__)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class HttpSource:
    """
    Shared plumbing for adapters that talk JSON over HTTP.

    Network errors, 5xx and 429 responses are retried up to ``max_retries``
    attempts with linear backoff. Other 4xx responses are returned as-is.
    Exhausted network errors surface as ``ProviderTransientFailure``; an
    exhausted retryable status is returned for the caller to reject.
    """

    name: str

    def __init__(
        self,
        *,
        timeout_s: float,
        max_retries: int = 1,
        backoff_base_s: float = 0.5,
        session: requests.Session | None = None,
    ):
        self.timeout_s = timeout_s
        self.max_retries = max(1, max_retries)
        self.backoff_base_s = backoff_base_s
        self.session = session or requests.Session()

    def _get(self, url: str, *, params: dict[str, Any] | None = None, headers: dict[str, str] | None = None):
        for attempt in range(1, self.max_retries + 1):
            try:
                r = self.session.get(url, params=params, headers=headers, timeout=self.timeout_s)
            except requests.RequestException as e:
                logger.warning("%s error (attempt %s/%s): %s", self.name, attempt, self.max_retries, e)
                if attempt == self.max_retries:
                    raise ProviderTransientFailure(self.name, str(e)) from e
                time.sleep(self.backoff_base_s * attempt)
                continue
            if _is_retryable_status(r.status_code) and attempt < self.max_retries:
                logger.warning("%s HTTP %s (attempt %s/%s)", self.name, r.status_code, attempt, self.max_retries)
                time.sleep(self.backoff_base_s * attempt)
                continue
            return r
        raise ProviderTransientFailure(self.name, "no attempts made")

    def _get_json(self, url: str, *, params: dict[str, Any] | None = None, headers: dict[str, str] | None = None) -> Any:
        r = self._get(url, params=params, headers=headers)
        if not 200 <= r.status_code < 300:
            raise ProviderTransientFailure(self.name, f"HTTP {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise ProviderTransientFailure(self.name, f"invalid JSON: {e}") from e


class TrackSearchSource(HttpSource):
    """Finds the canonical track reference for a song."""

    def search(self, query: SongQuery) -> TrackRef | None:
        raise NotImplementedError


class LinkSource:
    """Contributes some link fields for a song once its canonical track is known."""

    name: str

    def lookup(self, query: SongQuery, track: TrackRef) -> ProviderResult:
        raise NotImplementedError


def select_best_candidate(
    candidates: Sequence[TrackCandidate], query: SongQuery
) -> TrackCandidate | None:
    """
    First candidate whose artist and track name both contain the query's
    normalized artist and title; otherwise the top-ranked one.
    """
    usable = [c for c in candidates if c.track_url]
    if not usable:
        return None
    artist = query.normalized_artist
    title = query.normalized_title
    for c in usable:
        if artist in normalize(c.artist_name) and title in normalize(c.track_name):
            return c
    return usable[0]
