from __future__ import annotations

import logging
from urllib.parse import quote

from concerto_links.errors import ProviderTransientFailure

from .base import HttpSource, LinkSource
from .types import ProviderResult, SongQuery, TrackRef

logger = logging.getLogger(__name__)

LYRICS_OVH_URL = "https://api.lyrics.ovh/v1/{artist}/{title}"
LYRICS_SEARCH_URL = "https://www.google.com/search?q={q}"

# characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def lyrics_search_url(artist: str, title: str) -> str:
    q = f"{title.strip()} {artist.strip()} lyrics"
    return LYRICS_SEARCH_URL.format(q=quote(q, safe=_URI_COMPONENT_SAFE))


class LyricsOvhSource(HttpSource, LinkSource):
    """
    Checks lyrics.ovh for lyrics and, if present, hands out a search-engine
    link rather than the text itself.

    Never raises: every failure ends up as an empty result.
    """

    name = "lyrics_ovh"

    def lookup(self, query: SongQuery, track: TrackRef | None = None) -> ProviderResult:
        artist = (query.artist or "").strip()
        title = (query.title or "").strip()
        if not artist or not title:
            return ProviderResult.empty(self.name)

        url = LYRICS_OVH_URL.format(artist=quote(artist, safe=""), title=quote(title, safe=""))
        try:
            data = self._get_json(url)
        except ProviderTransientFailure as e:
            logger.info("lyrics.ovh: no lyrics for %s (%s)", query.display, e.reason)
            return ProviderResult.empty(self.name)
        except Exception:
            logger.exception("lyrics.ovh: unexpected failure for %s", query.display)
            return ProviderResult.empty(self.name)

        if not isinstance(data, dict) or not data.get("lyrics"):
            return ProviderResult.empty(self.name)
        return ProviderResult(source=self.name, lyrics_url=lyrics_search_url(artist, title))
