from __future__ import annotations

import logging

from concerto_links.errors import ProviderTransientFailure

from .base import TrackSearchSource, select_best_candidate
from .types import SongQuery, TrackCandidate, TrackRef

logger = logging.getLogger(__name__)

ITUNES_SEARCH_URL = "https://itunes.apple.com/search"


class ITunesSearchSource(TrackSearchSource):
    name = "itunes"

    def __init__(self, *, limit: int = 5, **kwargs):
        super().__init__(**kwargs)
        self.limit = limit

    def search(self, query: SongQuery) -> TrackRef | None:
        term = f"{query.title} {query.artist}".strip()
        if not term:
            return None

        data = self._get_json(
            ITUNES_SEARCH_URL,
            params={"term": term, "entity": "song", "limit": self.limit},
        )
        if not isinstance(data, dict):
            raise ProviderTransientFailure(self.name, "unexpected response shape")
        results = data.get("results")
        if not isinstance(results, list):
            results = []

        candidates = [
            TrackCandidate(
                artist_name=str(item.get("artistName") or ""),
                track_name=str(item.get("trackName") or ""),
                track_url=item.get("trackViewUrl") or None,
            )
            for item in results
            if isinstance(item, dict)
        ]
        best = select_best_candidate(candidates, query)
        if best is None:
            logger.debug("iTunes: no candidates for %s", query.display)
            return None
        return TrackRef(
            url=str(best.track_url),
            source=self.name,
            artist_name=best.artist_name,
            track_name=best.track_name,
        )
