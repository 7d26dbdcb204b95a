"""Keeps an event's reminder schedule in step with event writes."""
import logging
from datetime import datetime
from typing import Callable

from processor.models import Event
from processor.reminder_deriver import derive_reminders
from processor.timestamps import utc_now
from storage.reminder_store import ReminderStore

logger = logging.getLogger(__name__)


class ReminderLifecycleManager:
    """
    Create, replace and cancel reminders in response to event mutations.

    Every hook is best-effort: the event write that triggered it has already
    succeeded, so failures are logged and reported as zero reminders rather
    than raised to the caller.
    """

    def __init__(self, reminder_store: ReminderStore,
                 clock: Callable[[], datetime] = utc_now):
        self.reminder_store = reminder_store
        self.clock = clock

    def on_event_created(self, event: Event) -> int:
        """
        Schedule reminders for a newly created event.

        Returns:
            Count of reminders scheduled
        """
        try:
            return self._schedule(event)
        except Exception as e:
            logger.error(
                f"Failed to schedule reminders for event {event.event_id}: {e}",
                extra={'event_id': event.event_id, 'error_type': type(e).__name__},
                exc_info=True
            )
            return 0

    def on_event_updated(self, event: Event) -> int:
        """
        Recompute the reminder schedule of an updated event from scratch.

        Unsent reminders are cancelled first; sent ones are history and stay.

        Returns:
            Count of reminders scheduled
        """
        try:
            self.reminder_store.cancel_unsent_reminders(event.event_id)
            return self._schedule(event)
        except Exception as e:
            logger.error(
                f"Failed to reschedule reminders for event {event.event_id}: {e}",
                extra={'event_id': event.event_id, 'error_type': type(e).__name__},
                exc_info=True
            )
            return 0

    def on_event_deleted(self, event_id: str) -> int:
        """
        Cancel the unsent reminders of a deleted event.

        Returns:
            Count of reminders cancelled
        """
        try:
            return self.reminder_store.cancel_unsent_reminders(event_id)
        except Exception as e:
            logger.error(
                f"Failed to cancel reminders for event {event_id}: {e}",
                extra={'event_id': event_id, 'error_type': type(e).__name__},
                exc_info=True
            )
            return 0

    def _schedule(self, event: Event) -> int:
        now = self.clock()
        candidates = derive_reminders(event, now)
        if not candidates:
            logger.info(f"No future reminders for event {event.event_id}")
            return 0

        reminders = self.reminder_store.insert_reminders(
            event.event_id, candidates, now
        )
        return len(reminders)
