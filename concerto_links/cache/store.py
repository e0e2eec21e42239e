from __future__ import annotations

import json
import logging
import threading
from typing import Iterator, Protocol

from concerto_links.errors import StorageCorrupted, StorageUnavailable
from concerto_links.links.types import LinkRecord

logger = logging.getLogger(__name__)

# Bump the suffix whenever the persisted record layout changes.
CACHE_NAME = "concerto_setlist_cache_v2"


class Storage(Protocol):
    def read(self, name: str) -> str | None: ...

    def write(self, name: str, value: str) -> None: ...

    def delete(self, name: str) -> None: ...


class LinkCache:
    """
    Write-through map from cache key to LinkRecord.

    ``load()`` reads the persisted mapping once; after that ``get`` is a plain
    dict lookup. ``put`` re-reads the persisted mapping, applies the single
    change and writes the whole thing back, so keys written by someone else
    in the meantime survive.
    """

    def __init__(self, storage: Storage, name: str = CACHE_NAME):
        self.storage = storage
        self.name = name
        self._entries: dict[str, LinkRecord] = {}
        # records put while the storage was unavailable
        self._unsaved: dict[str, LinkRecord] = {}
        self._loaded = False
        self._lock = threading.Lock()

    def load(self) -> None:
        with self._lock:
            try:
                persisted = self._read_persisted()
            except StorageUnavailable as e:
                logger.warning("Link cache storage unavailable, starting empty: %s", e)
                persisted = None
            self._entries = persisted or {}
            self._loaded = True
        logger.debug("Loaded %d cached link records from '%s'", len(self._entries), self.name)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _read_persisted(self) -> dict[str, LinkRecord] | None:
        """
        Persisted entries, ``{}`` when nothing is stored, ``None`` when corrupt.

        Raises ``StorageUnavailable`` when the storage cannot be read right now.
        """
        try:
            raw = self.storage.read(self.name)
        except StorageCorrupted as e:
            logger.warning("Link cache storage corrupted, starting empty: %s", e)
            return None
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Link cache '%s' is not valid JSON, starting empty: %s", self.name, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Link cache '%s' has unexpected shape %s, starting empty", self.name, type(data).__name__)
            return None

        entries: dict[str, LinkRecord] = {}
        for key, value in data.items():
            if not isinstance(value, dict):
                logger.debug("Skipping malformed cache entry %r", key)
                continue
            try:
                entries[key] = LinkRecord.from_dict(value)
            except ValueError as e:
                logger.debug("Skipping malformed cache entry %r: %s", key, e)
        return entries

    def _write_persisted(self, entries: dict[str, LinkRecord]) -> None:
        payload = {key: rec.to_dict() for key, rec in entries.items()}
        self.storage.write(self.name, json.dumps(payload, ensure_ascii=False, sort_keys=True))

    def get(self, key: str) -> LinkRecord | None:
        self._ensure_loaded()
        return self._entries.get(key)

    def put(self, key: str, record: LinkRecord) -> None:
        self._ensure_loaded()
        with self._lock:
            self._entries[key] = record
            self._unsaved[key] = record
            try:
                persisted = self._read_persisted()
                base = persisted if persisted is not None else dict(self._entries)
                base.update(self._unsaved)
                self._write_persisted(base)
            except StorageUnavailable as e:
                # Never write over a mapping we could not read; retry on the next put.
                logger.warning(
                    "Link cache storage unavailable, keeping %d record(s) in memory: %s", len(self._unsaved), e
                )
                return
            self._unsaved.clear()
            self._entries = base

    def clear(self) -> None:
        with self._lock:
            self.storage.delete(self.name)
            self._entries = {}
            self._unsaved = {}
            self._loaded = True

    def items(self) -> Iterator[tuple[str, LinkRecord]]:
        self._ensure_loaded()
        return iter(sorted(self._entries.items()))

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        self._ensure_loaded()
        return key in self._entries
