"""Time-bounded cache in front of the calendar fetcher."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Optional

from calnote.core.exceptions import CalNoteError

from .ics_fetcher import ICSFetcher
from .models import CalendarComponent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0

Calendar = dict[str, CalendarComponent]


class CachedCalendarFetcher:
    """Remembers the last successfully decoded feed for ``timeout`` seconds.

    ``get()`` hands back the cached calendar until it is older than the
    timeout, then refreshes. A failed refresh leaves the previous result and
    timestamp untouched and re-raises, so the next ``get()`` tries again.
    Concurrent callers share a single in-flight refresh.

    Example:
        cache = CachedCalendarFetcher(fetcher, "https://example.com/cal.ics")
        calendar = await cache.get()      # fetches
        calendar = await cache.get()      # cached
        calendar = await cache.refresh()  # always fetches
    """

    def __init__(
        self,
        fetcher: ICSFetcher,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            fetcher: Fetcher used for refreshes
            url: Feed URL; a new URL needs a new cache object
            timeout: Seconds a result stays fresh
            clock: Monotonic clock, injectable for tests
        """
        self.fetcher = fetcher
        self.url = url
        self.timeout = timeout
        self._clock = clock
        self.last_fetch_time: Optional[float] = None
        self.last_result: Optional[Calendar] = None
        self._lock = asyncio.Lock()
        self.stats = {"hits": 0, "refreshes": 0, "failures": 0}

    def is_stale(self) -> bool:
        if self.last_fetch_time is None:
            return True
        return self._clock() - self.last_fetch_time > self.timeout

    async def get(self) -> Calendar:
        """Cached calendar, refreshed first when missing or stale."""
        async with self._lock:
            if not self.is_stale():
                self.stats["hits"] += 1
                logger.debug("Calendar cache hit for %s", self.url)
                return self.last_result or {}
            return await self._refresh_locked()

    async def refresh(self) -> Calendar:
        """Fetch now regardless of age.

        Raises:
            ICSFetchError: If the feed could not be retrieved
            ICSDecodeError: If the feed could not be decoded
        """
        async with self._lock:
            return await self._refresh_locked()

    async def _refresh_locked(self) -> Calendar:
        started = self._clock()
        try:
            result = await self.fetcher.fetch_calendar(self.url)
        except CalNoteError as e:
            self.stats["failures"] += 1
            logger.warning("Calendar refresh failed for %s: %s", self.url, e)
            raise
        except Exception:
            self.stats["failures"] += 1
            logger.exception("Unexpected error refreshing calendar from %s", self.url)
            raise

        self.last_result = result
        self.last_fetch_time = started
        self.stats["refreshes"] += 1
        logger.debug("Calendar cache refreshed for %s (%d components)", self.url, len(result))
        return result

    def invalidate(self) -> None:
        """Forget the cached calendar; the next ``get()`` fetches."""
        self.last_fetch_time = None
        self.last_result = None
