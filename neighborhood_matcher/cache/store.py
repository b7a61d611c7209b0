from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def _is_entry(value: Any) -> bool:
    """A loadable entry has a payload and a numeric expiry."""
    if not isinstance(value, dict) or "data" not in value:
        return False
    expires_at = value.get("expiresAt")
    return isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool)


class TTLCacheStore:
    """
    Key -> JSON value store with a per-entry expiry, persisted as one JSON file.

    Entries are kept in the on-disk shape::

        {"data": ..., "cachedAt": "<ISO-8601>", "expiresAt": <epoch ms>}

    ``get`` never returns an expired entry; the periodic sweep only reclaims
    memory and keeps the file small.
    """

    def __init__(self, path: Path | str, clock: Callable[[], float] = time.time) -> None:
        self.path = Path(path)
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._write_lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    # ── lifecycle ────────────────────────────────────────────────────────

    def open(self) -> TTLCacheStore:
        """Load the durable store, dropping entries that already expired."""
        self._entries = {}
        if self.path.is_file():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(raw, dict):
                    raise ValueError("cache file does not hold a JSON object")
                self._entries = {str(k): v for k, v in raw.items() if _is_entry(v)}
                skipped = len(raw) - len(self._entries)
                if skipped:
                    logger.warning("Skipped %d malformed cache entries in %s", skipped, self.path)
            except (OSError, ValueError):
                logger.warning("Could not load cache from %s, starting fresh", self.path, exc_info=True)
                self._entries = {}
        dropped = self._drop_expired()
        logger.info("Cache loaded: %d entries (%d expired dropped)", len(self._entries), dropped)
        return self

    async def close(self) -> None:
        """Flush the current state to disk."""
        await self._persist()

    # ── read / write ─────────────────────────────────────────────────────

    def _is_live(self, entry: dict[str, Any]) -> bool:
        return _to_ms(self._clock()) <= entry["expiresAt"]

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry and self._is_live(entry):
            self._hits += 1
            return entry["data"]
        if entry:
            del self._entries[key]
        self._misses += 1
        return None

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl must be positive, got {ttl_seconds}")
        now = self._clock()
        self._entries[key] = {
            "data": value,
            "cachedAt": datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
            "expiresAt": _to_ms(now + ttl_seconds),
        }
        await self._persist()

    def _drop_expired(self) -> int:
        now_ms = _to_ms(self._clock())
        expired = [k for k, v in self._entries.items() if v["expiresAt"] < now_ms]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def sweep_expired(self) -> int:
        cleared = self._drop_expired()
        if cleared:
            await self._persist()
            logger.info("Cleared %d expired cache entries", cleared)
        return cleared

    # ── persistence ──────────────────────────────────────────────────────

    def _write_snapshot(self, snapshot: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def _write(self, snapshot: dict[str, dict[str, Any]]) -> None:
        try:
            await asyncio.to_thread(self._write_snapshot, snapshot)
        except (OSError, TypeError, ValueError):
            logger.warning("Error saving cache to %s", self.path, exc_info=True)

    async def _persist(self) -> None:
        """
        Rewrite the whole store; failures are logged, never raised.

        A worker thread cannot be interrupted, so a cancelled caller keeps the
        write lock until its thread has finished and only then re-raises.
        """
        async with self._write_lock:
            write = asyncio.ensure_future(self._write(dict(self._entries)))
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                while not write.done():
                    try:
                        await asyncio.wait({write})
                    except asyncio.CancelledError:
                        continue
                raise

    # ── reporting ────────────────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        now_ms = _to_ms(self._clock())
        details = {
            key: {
                "cachedAt": entry.get("cachedAt"),
                "expiresAt": entry["expiresAt"],
                "isExpired": entry["expiresAt"] < now_ms,
                "timeToExpiry": entry["expiresAt"] - now_ms,
            }
            for key, entry in self._entries.items()
        }
        expired = sum(1 for d in details.values() if d["isExpired"])
        return {
            "totalEntries": len(details),
            "validEntries": len(details) - expired,
            "expiredEntries": expired,
            "details": details,
        }

    def stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)
