#!/usr/bin/env python3
"""
Bird Song Explorer daily content cache

In-memory map of (card, date, location key) -> the bird chosen for that
audience today, plus a location-independent GLOBAL_DAILY_<date> slot that
the daily update job fills once per day.

Entries live for the process lifetime only. A daemon thread sleeps until
the next local midnight and then evicts everything dated yesterday or
earlier.

Eviction goes by updated_at on the server clock, while keys carry the
requester's local date. A device ahead of the server (Auckland against a
UTC host) that stored tomorrow's bird late in the server's day loses it
at the server's midnight; its next request resolves again and may pick a
different bird for the same key.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from birdsong.content_generator.helpers import log
from birdsong.location import cache_key

GLOBAL_DAILY_PREFIX = "GLOBAL_DAILY_"


@dataclass(frozen=True)
class CacheEntry:
    bird_name: str
    updated_at: datetime
    location_key: str
    bird_audio_url: str = ""
    scientific_name: str = ""
    bird_audio_attribution: str = ""
    region: str = ""
    family: str = ""
    order: str = ""


def seconds_until_midnight(now: datetime) -> float:
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (tomorrow - now).total_seconds()


class DailyContentCache:
    """Thread-safe daily bird cache."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def get(self, card_id: str, day: date, loc_key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(cache_key(card_id, day, loc_key))

    def put(
        self,
        card_id: str,
        day: date,
        loc_key: str,
        bird_name: str,
        audio_url: str = "",
        scientific_name: str = "",
        **details: str,
    ) -> CacheEntry:
        """Store the day's bird. details: bird_audio_attribution, region, family, order."""
        # Concurrent misses for the same key may both resolve; the last write wins.
        entry = CacheEntry(
            bird_name=bird_name,
            updated_at=self._clock(),
            location_key=loc_key,
            bird_audio_url=audio_url,
            scientific_name=scientific_name,
            **details,
        )
        key = cache_key(card_id, day, loc_key)
        with self._lock:
            self._entries[key] = entry
        log(f"[CACHE] Stored {bird_name} for {key}")
        return entry

    def set_global_daily(
        self,
        day: date,
        bird_name: str,
        audio_url: str = "",
        scientific_name: str = "",
        **details: str,
    ) -> None:
        key = f"{GLOBAL_DAILY_PREFIX}{day.isoformat()}"
        entry = CacheEntry(
            bird_name=bird_name,
            updated_at=self._clock(),
            location_key="GLOBAL",
            bird_audio_url=audio_url,
            scientific_name=scientific_name,
            **details,
        )
        with self._lock:
            self._entries[key] = entry
        log(f"[CACHE] Set global daily bird for {day.isoformat()}: {bird_name}")

    def get_global_daily(self, day: date) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(f"{GLOBAL_DAILY_PREFIX}{day.isoformat()}")

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Delete every entry whose updated_at date is yesterday or earlier."""
        now = now or self._clock()
        yesterday = now.date() - timedelta(days=1)
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.updated_at.date() <= yesterday]
            for key in stale:
                del self._entries[key]
        if stale:
            log(f"[CACHE] Cleaned up {len(stale)} old cache entries")
        return len(stale)

    def stats(self) -> dict:
        with self._lock:
            locations = {entry.location_key for entry in self._entries.values()}
            return {
                "total_entries": len(self._entries),
                "unique_locations": len(locations),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # Midnight sweeper

    def _sweep_loop(self) -> None:
        while not self._stop.wait(seconds_until_midnight(self._clock())):
            self.sweep()

    def start_sweeper(self) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="cache-sweeper", daemon=True)
        self._sweeper.start()
        log("[CACHE] Midnight sweeper started")

    def stop_sweeper(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=timeout)
            self._sweeper = None


# Global instance for easy import
_cache: Optional[DailyContentCache] = None


def get_cache() -> DailyContentCache:
    """Get or create the global DailyContentCache, with its sweeper running."""
    global _cache
    if _cache is None:
        _cache = DailyContentCache()
        _cache.start_sweeper()
    return _cache
