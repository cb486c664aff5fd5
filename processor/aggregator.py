"""Merge and filter calendar events from multiple sources."""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from processor.models import CalendarEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookAheadWindow:
    """Inclusive time range [now, now + look_ahead_days]."""
    now: datetime
    look_ahead_days: int = 3

    @classmethod
    def starting_now(cls, look_ahead_days: int = 3) -> 'LookAheadWindow':
        return cls(now=datetime.now(timezone.utc), look_ahead_days=look_ahead_days)

    @property
    def end(self) -> datetime:
        return self.now + timedelta(days=self.look_ahead_days)

    def contains(self, event: CalendarEvent) -> bool:
        return self.now <= event.start_time <= self.end


def aggregate(
    per_source_events: Sequence[Sequence[CalendarEvent]],
    window: Optional[LookAheadWindow] = None
) -> List[CalendarEvent]:
    """
    Flatten per-source event lists and optionally apply the look-ahead filter.

    Source order is preserved, then the order each source returned its
    events in. Duplicates across sources are kept.

    Args:
        per_source_events: One event list per calendar source
        window: Look-ahead window, or None for the unfiltered mode

    Returns:
        Merged list of CalendarEvent objects
    """
    events = [event for source_events in per_source_events for event in source_events]

    if window is None:
        return events

    upcoming = [event for event in events if window.contains(event)]
    logger.info(
        f"Kept {len(upcoming)} of {len(events)} events starting within "
        f"{window.look_ahead_days} days"
    )
    return upcoming


async def fetch_all(reader, source_urls: Sequence[str]) -> List[List[CalendarEvent]]:
    """
    Fetch every source concurrently and wait for all of them.

    Each source gets its own worker thread, so no fetch queues behind
    another. The first failure propagates once every fetch has settled;
    sibling results are discarded.

    Args:
        reader: Object with a blocking fetch_events(url) method
        source_urls: Calendar source addresses

    Returns:
        Per-source event lists in the order of source_urls
    """
    if not source_urls:
        return []

    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor(max_workers=len(source_urls), thread_name_prefix='ical-fetch') as executor:
        futures = [
            loop.run_in_executor(executor, reader.fetch_events, url)
            for url in source_urls
        ]
        results = await asyncio.gather(*futures, return_exceptions=True)

    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


def collect_events(
    reader,
    source_urls: Sequence[str],
    window: Optional[LookAheadWindow] = None
) -> List[CalendarEvent]:
    """
    Fetch all sources and return the merged, optionally filtered, events.

    Args:
        reader: Object with a blocking fetch_events(url) method
        source_urls: Calendar source addresses
        window: Look-ahead window, or None for the unfiltered mode

    Returns:
        Merged list of CalendarEvent objects

    Raises:
        SourceFetchError: If any source fails
    """
    if not source_urls:
        logger.warning("No calendar sources configured")
        return []

    per_source_events = asyncio.run(fetch_all(reader, source_urls))
    return aggregate(per_source_events, window)
