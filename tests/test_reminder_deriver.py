"""Unit tests for reminder derivation."""
from datetime import timedelta

import pytest

from conftest import NOW, make_event
from processor.models import ReminderType
from processor.reminder_deriver import derive_reminders


@pytest.mark.parametrize('lead', [
    timedelta(hours=24, seconds=1),
    timedelta(days=3),
    timedelta(days=365),
])
def test_more_than_a_day_out_gets_both_reminders(lead):
    """Test events more than 24h away get day and hour reminders."""
    event = make_event(NOW + lead)

    candidates = derive_reminders(event, NOW)

    assert [c.reminder_type for c in candidates] == [
        ReminderType.ONE_DAY_BEFORE,
        ReminderType.ONE_HOUR_BEFORE
    ]
    assert candidates[0].scheduled_time == event.start - timedelta(hours=24)
    assert candidates[1].scheduled_time == event.start - timedelta(hours=1)


@pytest.mark.parametrize('lead', [
    timedelta(hours=1, seconds=1),
    timedelta(hours=2),
    timedelta(hours=24),
])
def test_between_one_and_24_hours_gets_hour_reminder(lead):
    """Test events 1-24h away only get the one-hour reminder."""
    event = make_event(NOW + lead)

    candidates = derive_reminders(event, NOW)

    assert len(candidates) == 1
    assert candidates[0].reminder_type is ReminderType.ONE_HOUR_BEFORE
    assert candidates[0].scheduled_time == event.start - timedelta(hours=1)


@pytest.mark.parametrize('lead', [
    timedelta(hours=1),
    timedelta(minutes=10),
    timedelta(0),
    timedelta(hours=-3),
])
def test_less_than_an_hour_out_gets_no_reminders(lead):
    """Test reminders at or before now are never derived."""
    event = make_event(NOW + lead)

    assert derive_reminders(event, NOW) == []


def test_disabled_reminders_derive_nothing():
    event = make_event(NOW + timedelta(days=2), reminders_enabled=False)

    assert derive_reminders(event, NOW) == []


def test_derivation_is_deterministic():
    event = make_event(NOW + timedelta(days=2))

    assert derive_reminders(event, NOW) == derive_reminders(event, NOW)
