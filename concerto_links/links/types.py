from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping

from concerto_links.normalize import KEY_SEPARATOR, normalize


class LinkStatus(str, enum.Enum):
    RESOLVED = "resolved"
    PARTIALLY_RESOLVED = "partially_resolved"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True)
class SongQuery:
    artist: str
    title: str
    normalized_artist: str = field(init=False, repr=False, compare=False)
    normalized_title: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "normalized_artist", normalize(self.artist))
        object.__setattr__(self, "normalized_title", normalize(self.title))

    @property
    def key(self) -> str:
        return f"{self.normalized_artist}{KEY_SEPARATOR}{self.normalized_title}"

    @property
    def display(self) -> str:
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.title or self.artist or "Unknown song"


@dataclass(frozen=True, slots=True)
class TrackCandidate:
    """One ranked hit from a catalog search."""
    artist_name: str
    track_name: str
    track_url: str | None


@dataclass(frozen=True, slots=True)
class TrackRef:
    """Canonical track reference used as the pivot for cross-platform lookup."""
    url: str
    source: str
    artist_name: str = ""
    track_name: str = ""


@dataclass(frozen=True, slots=True)
class ProviderResult:
    source: str
    spotify_url: str | None = None
    apple_music_url: str | None = None
    lyrics_url: str | None = None

    @classmethod
    def empty(cls, source: str) -> ProviderResult:
        return cls(source=source)

    @property
    def is_empty(self) -> bool:
        return not (self.spotify_url or self.apple_music_url or self.lyrics_url)


@dataclass(frozen=True, slots=True)
class LinkRecord:
    spotify_url: str | None
    apple_music_url: str | None
    lyrics_url: str | None
    fetched_at: float

    @classmethod
    def unresolved(cls, fetched_at: float) -> LinkRecord:
        return cls(spotify_url=None, apple_music_url=None, lyrics_url=None, fetched_at=fetched_at)

    @property
    def status(self) -> LinkStatus:
        if self.spotify_url or self.apple_music_url:
            return LinkStatus.RESOLVED
        if self.lyrics_url:
            return LinkStatus.PARTIALLY_RESOLVED
        return LinkStatus.UNRESOLVED

    def to_dict(self) -> dict[str, Any]:
        return {
            "spotify_url": self.spotify_url,
            "apple_music_url": self.apple_music_url,
            "lyrics_url": self.lyrics_url,
            "fetched_at": self.fetched_at,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LinkRecord:
        """
        Rebuild a record from its persisted form.

        ``status`` is derived, so a stored value is ignored. Raises ``ValueError``
        for entries that cannot be a record (missing timestamp, non-string URLs).
        """
        urls = {}
        for field in ("spotify_url", "apple_music_url", "lyrics_url"):
            value = data.get(field)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{field} must be a string or null, got {type(value).__name__}")
            urls[field] = value or None
        fetched_at = data.get("fetched_at")
        if isinstance(fetched_at, bool) or not isinstance(fetched_at, (int, float)):
            raise ValueError("fetched_at must be a number")
        return cls(fetched_at=float(fetched_at), **urls)
