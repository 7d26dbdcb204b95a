"""Shared fixtures: fake AWS credentials, mocked DynamoDB tables and sample data."""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import boto3
import pytest
from moto import mock_aws

from processor.models import DispatchResult, Event
from storage.event_store import EventStore
from storage.reminder_store import ReminderStore
from storage.schema import create_tables

EVENTS_TABLE = 'test-calendar-events'
REMINDERS_TABLE = 'test-calendar-reminders'

NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb():
    """Create mock DynamoDB tables for testing."""
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name='us-east-1')
        create_tables(resource, EVENTS_TABLE, REMINDERS_TABLE)
        yield resource


@pytest.fixture
def event_store(dynamodb):
    return EventStore(EVENTS_TABLE, dynamodb=dynamodb)


@pytest.fixture
def reminder_store(dynamodb):
    return ReminderStore(REMINDERS_TABLE, dynamodb=dynamodb)


@pytest.fixture
def clock():
    """A controllable clock starting at NOW."""
    current = {'now': NOW}

    def now():
        return current['now']

    now.set = lambda value: current.update(now=value)
    return now


@pytest.fixture
def dispatcher():
    """Dispatcher mock reporting successful delivery."""
    mock_dispatcher = Mock()
    mock_dispatcher.dispatch.return_value = DispatchResult(success=True, delivered=True)
    return mock_dispatcher


def make_event(start: datetime, **overrides) -> Event:
    """Build an Event starting at `start` lasting 30 minutes."""
    fields = dict(
        event_id='5f0c6c1e-5c1a-4a8e-9c7e-2b1f0f6d8a11',
        title='Standup',
        description='',
        location='',
        start=start,
        end=start + timedelta(minutes=30),
        all_day=False,
        color='#1a73e8',
        user_email='team@example.com',
        reminders_enabled=True,
        created_at=NOW,
        updated_at=NOW
    )
    fields.update(overrides)
    return Event(**fields)
