"""Event normalizer turning calendar events into RSS feed items."""
import html
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from enum import Enum
from typing import List, Optional
from urllib.parse import urljoin

from processor.models import CalendarEvent, FeedItem

logger = logging.getLogger(__name__)


class RenderPolicy(Enum):
    """How optional event fields are presented in a feed item."""
    PLAIN = 'plain'
    RICH = 'rich'


class EventNormalizer:
    """
    Normalizer for converting CalendarEvent objects to FeedItem objects.

    The plain policy copies optional fields through and omits the ones an
    event does not have. The rich policy folds every field into an HTML
    description and prints a fallback phrase for each missing one.
    """

    NO_DESCRIPTION = 'No description available'
    NO_END_TIME = 'No end time specified'
    NO_LOCATION = 'No location specified'
    NO_ORGANIZER = 'No organizer specified'
    NO_ATTENDEES = 'No attendees listed'

    DISPLAY_FORMAT = '%A, %B %d, %Y %I:%M %p UTC'

    def __init__(self, policy: RenderPolicy = RenderPolicy.PLAIN):
        """
        Initialize the normalizer.

        Args:
            policy: Presentation policy used for every event
        """
        self.policy = policy

    def to_feed_items(self, events: List[CalendarEvent], feed_origin: str) -> List[FeedItem]:
        """
        Normalize a list of events, preserving order.

        Args:
            events: Aggregated calendar events
            feed_origin: Origin the feed is served from

        Returns:
            List of FeedItem objects
        """
        items = [self.to_feed_item(event, feed_origin) for event in events]
        logger.info(
            f"Normalized {len(items)} events",
            extra={'render_policy': self.policy.value}
        )
        return items

    def to_feed_item(self, event: CalendarEvent, feed_origin: str) -> FeedItem:
        """
        Convert one event to a feed item.

        Args:
            event: Calendar event
            feed_origin: Origin the feed is served from; relative event
                links are resolved against it

        Returns:
            FeedItem object
        """
        link = self._resolve_link(event.source_url, feed_origin)
        pub_date = format_pub_date(event.start_time)

        if self.policy is RenderPolicy.RICH:
            return FeedItem(
                title=event.summary,
                description=self._rich_description(event),
                pub_date=pub_date,
                link=link
            )

        return FeedItem(
            title=event.summary,
            description=event.description or '',
            pub_date=pub_date,
            link=link,
            location=event.location,
            organizer=event.organizer,
            attendees=list(event.attendees) if event.attendees is not None else None
        )

    def _rich_description(self, event: CalendarEvent) -> str:
        """
        Build the HTML description block for the rich policy.

        Args:
            event: Calendar event

        Returns:
            HTML fragment with one paragraph per field
        """
        end_time = (
            self._display_time(event.end_time)
            if event.end_time else self.NO_END_TIME
        )
        attendees = (
            ', '.join(event.attendees)
            if event.attendees else self.NO_ATTENDEES
        )

        rows = [
            ('Start', self._display_time(event.start_time)),
            ('End', end_time),
            ('Location', event.location or self.NO_LOCATION),
            ('Organizer', event.organizer or self.NO_ORGANIZER),
            ('Attendees', attendees),
        ]

        parts = [f"<p>{html.escape(event.description or self.NO_DESCRIPTION)}</p>"]
        for label, value in rows:
            parts.append(f"<p><strong>{label}:</strong> {html.escape(value)}</p>")

        return '\n'.join(parts)

    def _display_time(self, value: datetime) -> str:
        return value.astimezone(timezone.utc).strftime(self.DISPLAY_FORMAT)

    def _resolve_link(self, source_url: Optional[str], feed_origin: str) -> Optional[str]:
        if not source_url:
            return None
        if not feed_origin:
            return source_url
        return urljoin(feed_origin, source_url)


def format_pub_date(value: datetime) -> str:
    """
    Format a timestamp as an RFC 1123 date in GMT.

    Args:
        value: Timezone-aware datetime

    Returns:
        String such as 'Mon, 15 Jan 2024 10:00:00 GMT'
    """
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
