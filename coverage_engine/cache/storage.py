"""
Coverage Desk — Cache Storage Backends
────────────────────────────────────────
Where cache envelopes physically live. TieredCache talks to one of these
and never touches the filesystem or Redis directly, so the backend can be
swapped without changing any call site.

Backends:
  FileStorage    one JSON file per key, directory per category (default)
  RedisStorage   one Redis string per key, no Redis-side expiry
  MemoryStorage  process-local dict (tests, throwaway runs)

Backends raise on failure. TieredCache decides what a failure means.
"""

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import redis.asyncio as aioredis

from coverage_engine.cache.ttl_config import LAYOUT, CacheCategory

log = logging.getLogger("cov.cache.storage")


class CacheStorage(ABC):
    """Raw text storage addressed by (category, key)."""

    name: str = "abstract"

    @abstractmethod
    async def ensure(self, category: CacheCategory) -> None: ...

    @abstractmethod
    async def read(self, category: CacheCategory, key: str) -> Optional[str]: ...

    @abstractmethod
    async def write(self, category: CacheCategory, key: str, text: str) -> None: ...

    async def close(self) -> None:
        return None


# ══════════════════════════════════════════════════════════════
# FILESYSTEM
# ══════════════════════════════════════════════════════════════
class FileStorage(CacheStorage):
    name = "file"

    def __init__(self, root):
        self.root = Path(root)

    def category_dir(self, category: CacheCategory) -> Path:
        layout = LAYOUT[category]
        return self.root / layout.directory if layout.directory else self.root

    def path_for(self, category: CacheCategory, key: str) -> Path:
        return self.category_dir(category) / LAYOUT[category].filename.format(key=key)

    async def ensure(self, category: CacheCategory) -> None:
        directory = self.category_dir(category)
        await _run_blocking(lambda: directory.mkdir(parents=True, exist_ok=True))

    async def read(self, category: CacheCategory, key: str) -> Optional[str]:
        path = self.path_for(category, key)

        def _read():
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

        return await _run_blocking(_read)

    async def write(self, category: CacheCategory, key: str, text: str) -> None:
        path = self.path_for(category, key)
        await _run_blocking(lambda: _atomic_write(path, text))


def _atomic_write(path: Path, text: str):
    """Write-fsync-rename: a reader sees the old file or the new one, never half."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


async def _run_blocking(fn):
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, fn)


# ══════════════════════════════════════════════════════════════
# REDIS
# ══════════════════════════════════════════════════════════════
class RedisStorage(CacheStorage):
    """
    Envelopes stored as plain strings under cache:<dir>:<file>.
    No SETEX; freshness is decided on read exactly as for files.
    """

    name = "redis"

    def __init__(self, url: str, client: Optional[aioredis.Redis] = None):
        self.url     = url
        self._client = client

    async def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(self.url, decode_responses=True, socket_timeout=2)
            log.info(f"Redis cache backend at {self.url}")
        return self._client

    @staticmethod
    def redis_key(category: CacheCategory, key: str) -> str:
        layout = LAYOUT[category]
        return f"cache:{layout.directory or 'root'}:{layout.filename.format(key=key)}"

    async def ensure(self, category: CacheCategory) -> None:
        client = await self._get_client()
        await client.ping()

    async def read(self, category: CacheCategory, key: str) -> Optional[str]:
        client = await self._get_client()
        return await client.get(self.redis_key(category, key))

    async def write(self, category: CacheCategory, key: str, text: str) -> None:
        client = await self._get_client()
        await client.set(self.redis_key(category, key), text)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# ══════════════════════════════════════════════════════════════
# MEMORY
# ══════════════════════════════════════════════════════════════
class MemoryStorage(CacheStorage):
    name = "memory"

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def ensure(self, category: CacheCategory) -> None:
        return None

    async def read(self, category: CacheCategory, key: str) -> Optional[str]:
        return self._data.get(f"{category.value}:{key}")

    async def write(self, category: CacheCategory, key: str, text: str) -> None:
        self._data[f"{category.value}:{key}"] = text


def build_storage(backend: str, cache_dir=None, redis_url: str = None) -> CacheStorage:
    backend = (backend or "file").lower()
    if backend == "redis":
        return RedisStorage(redis_url)
    if backend == "memory":
        return MemoryStorage()
    if backend != "file":
        log.warning(f"Unknown cache backend '{backend}' — using file storage")
    return FileStorage(cache_dir or "cache")
