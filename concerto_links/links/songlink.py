from __future__ import annotations

import logging

from .base import HttpSource, LinkSource
from .types import ProviderResult, SongQuery, TrackRef

logger = logging.getLogger(__name__)

SONGLINK_URL = "https://api.song.link/v1-alpha.1/links"


def normalize_apple_url(url: str | None) -> str | None:
    """Regional ``geo.`` Apple links open poorly in webviews; use the plain host."""
    if not url:
        return None
    return str(url).replace("geo.music.apple.com", "music.apple.com")


def _platform_url(platforms: dict, name: str) -> str | None:
    entry = platforms.get(name)
    if isinstance(entry, dict):
        url = entry.get("url")
        if isinstance(url, str) and url:
            return url
    return None


class SongLinkSource(HttpSource, LinkSource):
    """Cross-platform resolution through the song.link (Odesli) API."""

    name = "songlink"

    def resolve_url(self, track_url: str) -> ProviderResult:
        data = self._get_json(SONGLINK_URL, params={"url": track_url})
        platforms = data.get("linksByPlatform") if isinstance(data, dict) else None
        if not isinstance(platforms, dict):
            logger.debug("song.link: no platforms for %s", track_url)
            return ProviderResult.empty(self.name)
        return ProviderResult(
            source=self.name,
            spotify_url=_platform_url(platforms, "spotify"),
            apple_music_url=normalize_apple_url(_platform_url(platforms, "appleMusic")),
        )

    def lookup(self, query: SongQuery, track: TrackRef) -> ProviderResult:
        return self.resolve_url(track.url)
