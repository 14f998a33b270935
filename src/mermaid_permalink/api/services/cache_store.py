"""Durable cache stores for rendered diagrams."""

import asyncio
import hashlib
import json
import logging
import os
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from ...core.errors import CacheIOFailure
from ..models.config import APIConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """An immutable rendered response."""
    body: bytes
    content_type: str
    cache_control: str
    created_at: float
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


class CacheStore(Protocol):
    """Key/value blob store with TTL."""

    async def match(self, key: str) -> Optional[CacheEntry]:
        ...

    async def put(self, key: str, entry: CacheEntry) -> None:
        ...

    async def purge_expired(self) -> Dict[str, Any]:
        ...


class MemoryCacheStore:
    """In-process store; the oldest entries are evicted past ``max_entries``."""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def match(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._entries[key]
            return None
        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    async def purge_expired(self) -> Dict[str, Any]:
        # Runs on the event loop, the only thread touching _entries
        now = time.time()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        purged_entries = 0
        bytes_freed = 0
        for key in expired:
            entry = self._entries.pop(key, None)
            if entry is not None:
                purged_entries += 1
                bytes_freed += len(entry.body)
        return {"purged_entries": purged_entries, "bytes_freed": bytes_freed}


class FileCacheStore:
    """
    Stores each entry as a body file plus a JSON metadata file.

    File names are the SHA-256 of the cache key. The metadata file is written
    last, so an entry without one is incomplete and treated as a miss.
    Metadata that cannot be read back into an entry is also a miss, so the
    next render overwrites it.
    """

    def __init__(self, cache_dir: str):
        self.entries_dir = Path(cache_dir) / "entries"
        self.entries_dir.mkdir(parents=True, exist_ok=True)

    def _paths(self, key: str):
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.entries_dir / f"{digest}.bin", self.entries_dir / f"{digest}.json"

    async def match(self, key: str) -> Optional[CacheEntry]:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._write, key, entry)

    async def purge_expired(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._purge)

    def _read(self, key: str) -> Optional[CacheEntry]:
        body_path, meta_path = self._paths(key)
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            body = body_path.read_bytes()
        except FileNotFoundError:
            return None
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", meta_path.name, e)
            return None
        except OSError as e:
            raise CacheIOFailure("failed to read cache entry", details=str(e)) from e

        if not isinstance(meta, dict):
            logger.warning("Ignoring corrupt cache entry %s: metadata is not an object", meta_path.name)
            return None
        if meta.get("key") != key:
            return None

        try:
            entry = CacheEntry(
                body=body,
                content_type=str(meta["content_type"]),
                cache_control=str(meta["cache_control"]),
                created_at=float(meta["created_at"]),
                expires_at=float(meta["expires_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %r", meta_path.name, e)
            return None

        if entry.is_expired():
            return None
        return entry

    def _write(self, key: str, entry: CacheEntry) -> None:
        body_path, meta_path = self._paths(key)
        meta = {
            "key": key,
            "content_type": entry.content_type,
            "cache_control": entry.cache_control,
            "created_at": entry.created_at,
            "expires_at": entry.expires_at,
            "size_bytes": len(entry.body),
        }
        try:
            self._atomic_write(body_path, entry.body)
            self._atomic_write(meta_path, json.dumps(meta).encode("utf-8"))
        except OSError as e:
            raise CacheIOFailure("failed to write cache entry", details=str(e)) from e

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        # Unique temp name per writer; concurrent writes of one key must not share it
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def _purge(self) -> Dict[str, Any]:
        """Remove expired or unreadable entries and report what was freed."""
        now = time.time()
        purged_entries = 0
        bytes_freed = 0

        for meta_path in self.entries_dir.glob("*.json"):
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
                expired = now >= float(meta["expires_at"])
            except (OSError, ValueError, KeyError, TypeError):
                expired = True
            if not expired:
                continue

            body_path = meta_path.with_suffix(".bin")
            for path in (meta_path, body_path):
                try:
                    bytes_freed += path.stat().st_size
                    path.unlink()
                except FileNotFoundError:
                    pass
            purged_entries += 1

        return {"purged_entries": purged_entries, "bytes_freed": bytes_freed}


def build_cache_store(config: APIConfig) -> CacheStore:
    """Create the store selected by ``CACHE_BACKEND``."""
    backend = config.cache_backend.lower()
    if backend == "memory":
        return MemoryCacheStore(max_entries=config.cache_max_entries)
    if backend == "disk":
        return FileCacheStore(config.cache_dir)
    raise ValueError(f"Unknown cache backend: {config.cache_backend}")
