"""
Coverage Desk — Tiered Cache
──────────────────────────────
Age-bounded key/value store, one envelope per (category, key), each
category with its own TTL (see ttl_config.py).

Contract:
  get(category, key)           → CacheEntry if age ≤ TTL, else None
  put(category, key, payload)  → True once durably stored, False on failure

Staleness, absence and corrupt envelopes are all the same thing to a
caller: a miss. Nothing here raises into request handling.

No locking: two writers on the same key race and the last completed
write wins. Load is one human-triggered generation per ticker at a time.
Stale envelopes are never deleted; they are superseded by the next put.
"""

import json
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

from coverage_engine.cache.storage import CacheStorage
from coverage_engine.cache.ttl_config import LAYOUT, TTL, CacheCategory

log = logging.getLogger("cov.cache")


def normalise_key(key: str) -> str:
    return (key or "").strip().upper()


def iso_from_ms(ms: int) -> str:
    """Epoch-ms → ISO-8601 UTC with millisecond precision and a Z suffix."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class CacheEntry:
    key:        str
    category:   CacheCategory
    payload:    Any
    created_at: int    # epoch-ms

    @property
    def generated_at(self) -> str:
        return iso_from_ms(self.created_at)

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.created_at


class TieredCache:
    def __init__(self, storage: CacheStorage, clock: Callable[[], float] = time.time,
                 ttl: Optional[Dict[CacheCategory, int]] = None):
        self.storage = storage
        self.clock   = clock
        self.ttl     = dict(ttl or TTL)
        self._unavailable: set = set()

    # ── Lifecycle ─────────────────────────────────────────────
    async def ensure(self, category: CacheCategory) -> bool:
        """Prepare storage for one category. A failure only affects that category."""
        try:
            await self.storage.ensure(category)
            self._unavailable.discard(category)
            return True
        except Exception as e:
            self._unavailable.add(category)
            log.error(f"Cache category {category.value} unavailable: {e}")
            return False

    async def ensure_all(self, categories: Iterable[CacheCategory] = None) -> Dict[str, bool]:
        results = {}
        for category in categories or list(CacheCategory):
            results[category.value] = await self.ensure(category)
        ready = sum(results.values())
        log.info(f"Cache ready ({self.storage.name}): {ready}/{len(results)} categories")
        return results

    async def close(self):
        await self.storage.close()

    # ── Read ──────────────────────────────────────────────────
    async def get(self, category: CacheCategory, key: str) -> Optional[CacheEntry]:
        key = normalise_key(key)
        if category in self._unavailable:
            log.debug(f"Cache miss {category.value}/{key} (category unavailable)")
            return None
        try:
            raw = await self.storage.read(category, key)
        except Exception as e:
            log.warning(f"Cache read failed for {category.value}/{key}: {e}")
            return None

        if raw is None:
            log.debug(f"Cache miss {category.value}/{key}")
            return None

        try:
            entry = self._decode(category, key, raw)
        except (ValueError, TypeError, KeyError, OverflowError) as e:
            log.warning(f"Corrupt cache entry {category.value}/{key}: {e}")
            return None

        age_ms = entry.age_ms(self.now_ms())
        if age_ms > self.ttl[category] * 1000:
            log.info(f"Cache expired {category.value}/{key} (age={_fmt_age(age_ms // 1000)})")
            return None

        log.debug(f"Cache hit {category.value}/{key} (age={_fmt_age(age_ms // 1000)})")
        return entry

    # ── Write ─────────────────────────────────────────────────
    async def put(self, category: CacheCategory, key: str, payload: Any,
                  now_ms: Optional[int] = None) -> bool:
        """
        Overwrite (category, key) wholesale. Returns only after the write is durable.
        `now_ms` stamps the entry; callers that report a timestamp pass the one they report.
        """
        key = normalise_key(key)
        if category in self._unavailable:
            log.warning(f"Cache write skipped for {category.value}/{key}: category unavailable")
            return False
        now_ms = self.now_ms() if now_ms is None else now_ms
        try:
            text = json.dumps(self._encode(category, key, payload, now_ms), indent=2, ensure_ascii=False)
            await self.storage.write(category, key, text)
        except Exception as e:
            log.error(f"Cache write failed for {category.value}/{key}: {e}")
            return False
        log.debug(f"Cache write {category.value}/{key}")
        return True

    def status(self) -> dict:
        return {
            "backend":     self.storage.name,
            "ttl_seconds": {c.value: s for c, s in self.ttl.items()},
            "unavailable": sorted(c.value for c in self._unavailable),
        }

    # ── Envelope codec ────────────────────────────────────────
    def now_ms(self) -> int:
        return int(round(self.clock() * 1000))

    @staticmethod
    def _encode(category: CacheCategory, key: str, payload: Any, now_ms: int) -> dict:
        layout = LAYOUT[category]
        if layout.flat:
            if not isinstance(payload, dict):
                raise TypeError(f"{category.value} payload must be a mapping")
            envelope = {layout.key_field: key}
            envelope.update(payload)
            envelope[layout.timestamp_field] = now_ms
            envelope["generatedAt"] = iso_from_ms(now_ms)
            return envelope
        return {layout.key_field: key, "data": payload, layout.timestamp_field: now_ms}

    @staticmethod
    def _decode(category: CacheCategory, key: str, raw: str) -> CacheEntry:
        layout   = LAYOUT[category]
        envelope = json.loads(raw)
        if not isinstance(envelope, dict):
            raise TypeError("envelope is not an object")

        created_at = envelope[layout.timestamp_field]
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise TypeError(f"{layout.timestamp_field} is not a number")
        if not math.isfinite(created_at):
            raise ValueError(f"{layout.timestamp_field} is not finite")

        if layout.flat:
            skip = {layout.key_field, layout.timestamp_field, "generatedAt"}
            payload = {k: v for k, v in envelope.items() if k not in skip}
        else:
            payload = envelope["data"]

        return CacheEntry(key=key, category=category, payload=payload, created_at=int(created_at))


def _fmt_age(seconds: int) -> str:
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
