"""Data models for the calendar feed pipeline."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class CalendarEvent:
    """Event parsed from a calendar source."""
    summary: str
    start_time: datetime
    description: Optional[str] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    organizer: Optional[str] = None
    attendees: Optional[List[str]] = None
    source_url: Optional[str] = None


@dataclass
class FeedItem:
    """Rendering-ready RSS item."""
    title: str
    description: str
    pub_date: str
    link: Optional[str] = None
    location: Optional[str] = None
    organizer: Optional[str] = None
    attendees: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to an RSS field map.

        Optional fields that are absent are left out entirely.

        Returns:
            Ordered dict of RSS element name to value
        """
        item: Dict[str, Any] = {
            'title': self.title,
            'description': self.description,
            'pubDate': self.pub_date,
        }

        # Add optional fields if present
        if self.link is not None:
            item['link'] = self.link
        if self.location is not None:
            item['location'] = self.location
        if self.organizer is not None:
            item['organizer'] = self.organizer
        if self.attendees is not None:
            item['attendees'] = list(self.attendees)

        return item


@dataclass
class CachedDocument:
    """Rendered feed stored in the result cache."""
    cache_id: str
    document: str
    stored_at: int

    def is_fresh(self, now: float, ttl_seconds: int) -> bool:
        return now - self.stored_at < ttl_seconds
