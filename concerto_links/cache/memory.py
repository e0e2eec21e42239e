from __future__ import annotations


class MemoryStorage:
    """In-process stand-in for SqliteStorage."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.blobs: dict[str, str] = dict(initial or {})
        self.writes = 0

    def read(self, name: str) -> str | None:
        return self.blobs.get(name)

    def write(self, name: str, value: str) -> None:
        self.blobs[name] = value
        self.writes += 1

    def delete(self, name: str) -> None:
        self.blobs.pop(name, None)
