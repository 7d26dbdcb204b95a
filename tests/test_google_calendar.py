"""Unit tests for the Google Calendar holiday client."""
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import requests
import responses

from holiday_feed.google_calendar import DEFAULT_HOLIDAY_COLOR, GoogleCalendarClient

EVENTS_URL = (
    f"{GoogleCalendarClient.BASE_URL}/en.indian%23holiday%40group.v.calendar.google.com/events"
)
TIME_MIN = datetime(2024, 3, 1, tzinfo=timezone.utc)
TIME_MAX = datetime(2024, 4, 1, tzinfo=timezone.utc)

SAMPLE_RESPONSE = {
    'items': [
        {
            'id': 'holi2024',
            'summary': 'Holi',
            'start': {'date': '2024-03-25'},
            'end': {'date': '2024-03-26'},
            'htmlLink': 'https://calendar.google.com/event?eid=holi2024'
        },
        {
            'id': 'briefing',
            'summary': 'Briefing',
            'colorId': '11',
            'start': {'dateTime': '2024-03-20T10:00:00+05:30'},
            'end': {'dateTime': '2024-03-20T11:00:00+05:30'},
            'location': 'Delhi'
        },
        {
            'id': 'untitled',
            'start': {'date': '2024-03-28'}
        },
        {
            'id': 'broken',
            'start': {}
        }
    ]
}


@pytest.fixture
def client():
    return GoogleCalendarClient(api_key='test-key')


class TestGoogleCalendarClient:
    """Test cases for GoogleCalendarClient."""

    @responses.activate
    def test_fetch_events_success(self, client):
        """Test successful fetch and mapping of calendar items."""
        responses.add(responses.GET, EVENTS_URL, json=SAMPLE_RESPONSE, status=200)

        events = client.fetch_events(TIME_MIN, TIME_MAX)

        assert [event.event_id for event in events] == [
            'google_holi2024', 'google_briefing', 'google_untitled'
        ]

        holi, briefing, untitled = events
        assert holi.all_day is True
        assert holi.start == datetime(2024, 3, 25, tzinfo=timezone.utc)
        assert holi.color == DEFAULT_HOLIDAY_COLOR
        assert holi.html_link == 'https://calendar.google.com/event?eid=holi2024'
        assert holi.source == 'google'

        assert briefing.all_day is False
        assert briefing.start == datetime(2024, 3, 20, 4, 30, tzinfo=timezone.utc)
        assert briefing.color == '#dc2127'
        assert briefing.location == 'Delhi'

        assert untitled.title == '(No title)'
        assert untitled.end == datetime(2024, 3, 29, tzinfo=timezone.utc)

    @responses.activate
    def test_fetch_events_query_parameters(self, client):
        responses.add(responses.GET, EVENTS_URL, json={'items': []}, status=200)

        client.fetch_events(TIME_MIN, TIME_MAX, max_results=10)

        params = responses.calls[0].request.params
        assert params['key'] == 'test-key'
        assert params['timeMin'] == '2024-03-01T00:00:00.000Z'
        assert params['timeMax'] == '2024-04-01T00:00:00.000Z'
        assert params['singleEvents'] == 'true'
        assert params['orderBy'] == 'startTime'
        assert params['maxResults'] == '10'

    @responses.activate
    @patch('holiday_feed.google_calendar.time.sleep')
    def test_fetch_events_retry_logic(self, mock_sleep, client):
        """Test retry with exponential backoff on failure."""
        responses.add(responses.GET, EVENTS_URL, status=500)
        responses.add(responses.GET, EVENTS_URL, status=500)
        responses.add(responses.GET, EVENTS_URL, json={'items': []}, status=200)

        events = client.fetch_events(TIME_MIN, TIME_MAX)

        assert events == []
        assert len(responses.calls) == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    @responses.activate
    @patch('holiday_feed.google_calendar.time.sleep')
    def test_fetch_events_all_retries_fail(self, mock_sleep, client):
        responses.add(responses.GET, EVENTS_URL, status=503)

        with pytest.raises(requests.RequestException):
            client.fetch_events(TIME_MIN, TIME_MAX)

        assert len(responses.calls) == 3

    @responses.activate
    def test_fetch_events_without_api_key(self):
        client = GoogleCalendarClient(api_key='')

        assert client.configured is False
        assert client.fetch_events(TIME_MIN, TIME_MAX) == []
        assert len(responses.calls) == 0
