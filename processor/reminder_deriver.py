"""Derivation of reminder instants from event timing."""
from datetime import datetime
from typing import List

from processor.models import Event, ReminderCandidate, ReminderType

# Longest lead time first
REMINDER_TYPES = (ReminderType.ONE_DAY_BEFORE, ReminderType.ONE_HOUR_BEFORE)


def derive_reminders(event: Event, now: datetime) -> List[ReminderCandidate]:
    """
    Compute the future reminder instants for an event.

    A reminder is only included when its instant is strictly after now, so
    events starting within the hour get none and events 1-24 hours out get
    only the one-hour reminder.

    Args:
        event: Event to derive reminders for
        now: Current time (aware UTC)

    Returns:
        At most one candidate per reminder type, empty when reminders are disabled
    """
    if not event.reminders_enabled:
        return []

    candidates = []
    for reminder_type in REMINDER_TYPES:
        scheduled_time = event.start - reminder_type.lead_time
        if scheduled_time > now:
            candidates.append(
                ReminderCandidate(
                    reminder_type=reminder_type,
                    scheduled_time=scheduled_time
                )
            )

    return candidates
