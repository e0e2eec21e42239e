from __future__ import annotations

import threading

from concerto_links.errors import ProviderTransientFailure
from concerto_links.links.base import LinkSource, TrackSearchSource
from concerto_links.links.types import ProviderResult, SongQuery, TrackRef


class ScriptedTrackSearch(TrackSearchSource):
    name = "scripted_search"

    def __init__(self, track: TrackRef | None = None, *, error: Exception | None = None):
        # no HTTP session needed
        self.track = track
        self.error = error
        self.queries: list[SongQuery] = []

    def search(self, query: SongQuery) -> TrackRef | None:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.track


class ScriptedLinkSource(LinkSource):
    def __init__(self, name: str, result: ProviderResult | None = None, *, error: Exception | None = None):
        self.name = name
        self.result = result or ProviderResult.empty(name)
        self.error = error
        self.calls: list[tuple[SongQuery, TrackRef]] = []

    def lookup(self, query: SongQuery, track: TrackRef) -> ProviderResult:
        self.calls.append((query, track))
        if self.error is not None:
            raise self.error
        return self.result


class BlockingLinkSource(LinkSource):
    """Never answers until ``release()`` is called."""

    def __init__(self, name: str, result: ProviderResult):
        self.name = name
        self.result = result
        self.started = threading.Event()
        self._gate = threading.Event()

    def release(self) -> None:
        self._gate.set()

    def lookup(self, query: SongQuery, track: TrackRef) -> ProviderResult:
        self.started.set()
        self._gate.wait(timeout=10)
        return self.result


def failing_source(name: str) -> ScriptedLinkSource:
    return ScriptedLinkSource(name, error=ProviderTransientFailure(name, "HTTP 503"))
