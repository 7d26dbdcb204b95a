"""Client for read-only public Google Calendar events (holidays)."""
import logging
import time
from datetime import datetime, timedelta
from typing import List, Optional
from urllib.parse import quote

import requests

from processor.models import ExternalEvent
from processor.timestamps import parse_iso8601, to_api

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_ID = 'en.indian#holiday@group.v.calendar.google.com'

COLOR_MAP = {
    '1': '#a4bdfc',   # Lavender
    '2': '#7ae7bf',   # Sage
    '3': '#dbadff',   # Grape
    '4': '#ff887c',   # Flamingo
    '5': '#fbd75b',   # Banana
    '6': '#ffb878',   # Tangerine
    '7': '#46d6db',   # Peacock
    '8': '#e1e1e1',   # Graphite
    '9': '#5484ed',   # Blueberry
    '10': '#51b749',  # Basil
    '11': '#dc2127',  # Tomato
}
DEFAULT_HOLIDAY_COLOR = '#137333'


class GoogleCalendarClient:
    """Fetches events of a public Google Calendar with an API key."""

    BASE_URL = "https://www.googleapis.com/calendar/v3/calendars"

    def __init__(self, api_key: str, calendar_id: str = DEFAULT_CALENDAR_ID,
                 timeout: int = 30):
        """
        Initialize the calendar client.

        Args:
            api_key: Google API key for public data access
            calendar_id: Public calendar to read
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.api_key = api_key
        self.calendar_id = calendar_id
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def fetch_events(self, time_min: datetime, time_max: datetime,
                     max_results: int = 50) -> List[ExternalEvent]:
        """
        Fetch events between two instants.

        Args:
            time_min: Lower bound (exclusive) of event end times
            time_max: Upper bound (exclusive) of event start times
            max_results: Maximum number of events to return

        Returns:
            List of ExternalEvent objects, empty when no API key is configured

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        if not self.configured:
            logger.info("No Google API key configured, skipping holiday events")
            return []

        params = {
            'key': self.api_key,
            'timeMin': to_api(time_min),
            'timeMax': to_api(time_max),
            'showDeleted': 'false',
            'singleEvents': 'true',
            'maxResults': max_results,
            'orderBy': 'startTime'
        }

        payload = self._get_with_retry(self._events_url(), params)

        events = []
        for item in payload.get('items', []):
            try:
                event = self._parse_item(item)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse calendar item: {e}")
                continue

        logger.info(f"Fetched {len(events)} events from calendar {self.calendar_id}")
        return events

    def _events_url(self) -> str:
        return f"{self.BASE_URL}/{quote(self.calendar_id, safe='')}/events"

    def _get_with_retry(self, url: str, params: dict) -> dict:
        """
        GET a JSON document with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        max_retries = 3
        base_delay = 1  # seconds

        for attempt in range(max_retries):
            try:
                logger.info(f"Fetching calendar events (attempt {attempt + 1}/{max_retries})")
                response = requests.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if attempt < max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _parse_item(self, item: dict) -> Optional[ExternalEvent]:
        """
        Convert a Google Calendar item to an ExternalEvent.

        Items with only a date (no dateTime) are all-day events.

        Returns:
            ExternalEvent or None if the item has no usable start
        """
        start_info = item.get('start') or {}
        end_info = item.get('end') or {}

        all_day = 'dateTime' not in start_info
        start = parse_iso8601(start_info.get('dateTime') or start_info.get('date'))
        if start is None:
            return None

        end = parse_iso8601(end_info.get('dateTime') or end_info.get('date'))
        if end is None:
            end = start + timedelta(days=1) if all_day else start

        return ExternalEvent(
            event_id=f"google_{item.get('id')}",
            title=item.get('summary') or '(No title)',
            start=start,
            end=end,
            description=item.get('description') or '',
            location=item.get('location') or '',
            color=COLOR_MAP.get(str(item.get('colorId')), DEFAULT_HOLIDAY_COLOR),
            all_day=all_day,
            html_link=item.get('htmlLink')
        )
