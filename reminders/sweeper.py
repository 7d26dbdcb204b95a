"""Periodic sweep that dispatches due reminders."""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from notifications.dispatcher import NotificationDispatcher
from processor.models import Reminder, SweepResult
from processor.timestamps import utc_now
from storage.event_store import EventStore
from storage.reminder_store import ReminderStore

logger = logging.getLogger(__name__)

# Outcomes of processing a single due reminder
SENT = 'sent'
SKIPPED = 'skipped'
ORPHAN_REMOVED = 'orphan_removed'
FAILED = 'failed'


class ReminderSweeper:
    """
    Finds due, unsent reminders and dispatches them.

    Each reminder is claimed with a conditional write before it is
    dispatched, so overlapping sweeps cannot send the same reminder twice.
    The sent transition is applied only after a successful dispatch; a failed
    dispatch releases the claim and leaves the reminder for the next tick.
    A crash between send and mark means the reminder is resent once the
    claim lease runs out (at-least-once delivery).
    """

    def __init__(self, event_store: EventStore, reminder_store: ReminderStore,
                 dispatcher: NotificationDispatcher,
                 clock: Callable[[], datetime] = utc_now,
                 claim_lease: timedelta = timedelta(minutes=5),
                 orphan_max_age: timedelta = timedelta(days=7)):
        self.event_store = event_store
        self.reminder_store = reminder_store
        self.dispatcher = dispatcher
        self.clock = clock
        self.claim_lease = claim_lease
        self.orphan_max_age = orphan_max_age

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one sweep tick.

        Args:
            now: Time of the tick, defaults to the clock

        Returns:
            SweepResult with per-outcome counts

        Raises:
            ClientError: If the due reminders cannot be queried
        """
        now = now or self.clock()
        result = SweepResult()

        due_reminders = self.reminder_store.find_due_reminders(now)
        result.due = len(due_reminders)

        for reminder in due_reminders:
            try:
                outcome = self._process_reminder(reminder, now)
            except Exception as e:
                error_msg = f"Error processing reminder {reminder.reminder_id}: {e}"
                logger.error(
                    error_msg,
                    extra={'reminder_id': reminder.reminder_id, 'error_type': type(e).__name__},
                    exc_info=True
                )
                result.errors.append(error_msg)
                outcome = FAILED

            if outcome == SENT:
                result.sent += 1
            elif outcome == ORPHAN_REMOVED:
                result.orphans_removed += 1
            elif outcome == FAILED:
                result.failed += 1
            else:
                result.skipped += 1

        if result.due:
            logger.info(
                f"Processed {result.due} due reminders",
                extra={
                    'sent': result.sent,
                    'skipped': result.skipped,
                    'orphans_removed': result.orphans_removed,
                    'failed': result.failed
                }
            )
        return result

    def _process_reminder(self, reminder: Reminder, now: datetime) -> str:
        """
        Resolve, claim, dispatch and mark a single due reminder.

        Args:
            reminder: Due reminder
            now: Time of the tick

        Returns:
            One of SENT, SKIPPED, ORPHAN_REMOVED, FAILED
        """
        event = self.event_store.get_event(reminder.event_id)
        if event is None:
            return self._handle_orphan(reminder, now)

        token = uuid.uuid4().hex
        if not self.reminder_store.claim(
            reminder.event_id, reminder.reminder_id, token, now, now + self.claim_lease
        ):
            return SKIPPED

        try:
            result = self.dispatcher.dispatch(event, reminder.reminder_type)
        except Exception:
            self.reminder_store.release_claim(reminder.event_id, reminder.reminder_id, token)
            raise

        if not result.success:
            self.reminder_store.release_claim(reminder.event_id, reminder.reminder_id, token)
            logger.warning(
                f"Dispatch failed for reminder {reminder.reminder_id}, will retry",
                extra={'reminder_id': reminder.reminder_id, 'error': result.error}
            )
            return FAILED

        if not self.reminder_store.mark_sent(
            reminder.event_id, reminder.reminder_id, token, now
        ):
            return SKIPPED

        logger.info(
            f"Reminder sent for event: {event.title} "
            f"({reminder.reminder_type.label} before)"
        )
        return SENT

    def _handle_orphan(self, reminder: Reminder, now: datetime) -> str:
        if now - reminder.scheduled_time > self.orphan_max_age:
            if self.reminder_store.delete_unsent_reminder(
                reminder.event_id, reminder.reminder_id
            ):
                logger.info(
                    f"Removed orphaned reminder {reminder.reminder_id} "
                    f"for missing event {reminder.event_id}"
                )
                return ORPHAN_REMOVED

        logger.warning(
            f"Skipping reminder {reminder.reminder_id}: "
            f"event {reminder.event_id} no longer exists"
        )
        return SKIPPED
