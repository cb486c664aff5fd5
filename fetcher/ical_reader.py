"""iCalendar source reader."""
import logging
from datetime import date, datetime, time, timezone
from typing import List, Optional

import requests
from icalendar import Calendar

from processor.exceptions import SourceFetchError
from processor.models import CalendarEvent

logger = logging.getLogger(__name__)


class ICalReader:
    """Reader for remote iCalendar (.ics) feeds."""

    CONTENT_URL_PROPERTY = 'X-GOOGLE-CALENDAR-CONTENT-URL'

    def __init__(self, timeout: int = 30):
        """
        Initialize the calendar reader.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.timeout = timeout

    def fetch_events(self, source_url: str) -> List[CalendarEvent]:
        """
        Fetch and parse every VEVENT from one calendar feed.

        Args:
            source_url: Address of the calendar feed

        Returns:
            List of CalendarEvent objects in document order

        Raises:
            SourceFetchError: If the request fails or the body is not a calendar
        """
        logger.info("Fetching calendar", extra={'source_url': source_url})

        body = self._fetch_calendar(source_url)
        calendar = self._parse_calendar(source_url, body)

        events = []
        for component in calendar.walk('VEVENT'):
            try:
                event = self._component_to_event(component)
            except (TypeError, ValueError) as e:
                raise SourceFetchError(source_url, f"invalid event: {e}") from e
            if event:
                events.append(event)

        logger.info(
            f"Parsed {len(events)} events from calendar",
            extra={'source_url': source_url, 'event_count': len(events)}
        )
        return events

    def _fetch_calendar(self, source_url: str) -> bytes:
        """
        Download the raw calendar document.

        Args:
            source_url: Address of the calendar feed

        Returns:
            Response body as bytes

        Raises:
            SourceFetchError: If the request fails or returns an error status
        """
        try:
            response = requests.get(source_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SourceFetchError(source_url, f"request failed: {e}") from e

        return response.content

    def _parse_calendar(self, source_url: str, body: bytes) -> Calendar:
        # icalendar raises a mix of ValueError/KeyError/IndexError on bad input
        try:
            calendar = Calendar.from_ical(body)
        except Exception as e:
            raise SourceFetchError(source_url, f"invalid calendar data: {e}") from e

        if calendar.name != 'VCALENDAR':
            raise SourceFetchError(
                source_url, f"expected VCALENDAR, got {calendar.name}"
            )
        return calendar

    def _component_to_event(self, component) -> Optional[CalendarEvent]:
        """
        Convert a VEVENT component to a CalendarEvent.

        Args:
            component: icalendar VEVENT component

        Returns:
            CalendarEvent or None if the component has no start time
        """
        summary = _text(component.get('summary')) or ''

        dtstart = component.get('dtstart')
        if dtstart is None:
            logger.warning(f"Skipping event without DTSTART: '{summary}'")
            return None
        start_time = _to_aware_datetime(dtstart.dt)

        end_time = None
        dtend = component.get('dtend')
        duration = component.get('duration')
        if dtend is not None:
            end_time = _to_aware_datetime(dtend.dt)
        elif duration is not None:
            end_time = start_time + duration.dt

        organizer = component.get('organizer')

        return CalendarEvent(
            summary=summary,
            start_time=start_time,
            description=_text(component.get('description')),
            end_time=end_time,
            location=_text(component.get('location')),
            organizer=_text(organizer),
            attendees=self._attendees(component),
            source_url=(
                _text(component.get(self.CONTENT_URL_PROPERTY))
                or _text(component.get('url'))
            )
        )

    def _attendees(self, component) -> Optional[List[str]]:
        attendees = component.get('attendee')
        if attendees is None:
            return None

        # A single ATTENDEE comes back as a scalar, several as a list
        if not isinstance(attendees, list):
            attendees = [attendees]

        return [str(attendee) for attendee in attendees]


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _to_aware_datetime(value) -> datetime:
    """
    Normalize a DTSTART/DTEND value to a timezone-aware datetime.

    Date-only values become midnight UTC; floating times are read as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise TypeError(f"Unsupported date value: {value!r}")
