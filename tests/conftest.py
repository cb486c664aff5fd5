"""Shared fixtures for the Calendar RSS tests."""
import time
from datetime import datetime, timezone

import pytest

from processor.exceptions import CacheReadError, CacheWriteError
from processor.models import CachedDocument, CalendarEvent


class InMemoryFeedCache:
    """In-memory stand-in for DynamoDBFeedCache."""

    def __init__(self, cache_id='test-feed', ttl_seconds=7200, clock=time.time):
        self.cache_id = cache_id
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.row = None
        self.fail_reads = False
        self.fail_writes = False
        self.put_calls = 0

    def get(self):
        if self.fail_reads:
            raise CacheReadError('simulated read failure')
        if self.row is None or not self.row.is_fresh(self.clock(), self.ttl_seconds):
            return None
        return self.row

    def put(self, document):
        self.put_calls += 1
        if self.fail_writes:
            raise CacheWriteError('simulated write failure')
        self.row = CachedDocument(
            cache_id=self.cache_id,
            document=document,
            stored_at=int(self.clock())
        )
        return self.row


@pytest.fixture
def memory_cache():
    """Create an empty in-memory feed cache."""
    return InMemoryFeedCache()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Point boto3 at fake credentials so moto never reaches AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def sample_events():
    """Create sample calendar events."""
    return [
        CalendarEvent(
            summary='Team Standup',
            start_time=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
            description='Daily sync',
            end_time=datetime(2024, 1, 15, 10, 15, tzinfo=timezone.utc),
            location='Room 4',
            organizer='mailto:alice@example.com',
            attendees=['mailto:bob@example.com', 'mailto:carol@example.com'],
            source_url='https://calendar.example.com/event?eid=1'
        ),
        CalendarEvent(
            summary='Lunch',
            start_time=datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        )
    ]


SAMPLE_ICS = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example Corp//Calendar//EN
BEGIN:VEVENT
UID:event-1@example.com
SUMMARY:Team Standup
DESCRIPTION:Daily sync
DTSTART:20240115T100000Z
DTEND:20240115T101500Z
LOCATION:Room 4
ORGANIZER;CN=Alice:mailto:alice@example.com
ATTENDEE;CN=Bob:mailto:bob@example.com
ATTENDEE;CN=Carol:mailto:carol@example.com
X-GOOGLE-CALENDAR-CONTENT-URL:https://calendar.example.com/event?eid=1
END:VEVENT
BEGIN:VEVENT
UID:event-2@example.com
SUMMARY:Company Holiday
DTSTART;VALUE=DATE:20240116
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def sample_ics():
    """Return a small iCalendar document with two events."""
    return SAMPLE_ICS
