"""Event CRUD orchestration with reminder side effects."""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from notifications.dispatcher import NotificationDispatcher
from processor.errors import EventNotFoundError, ValidationError
from processor.event_processor import EventProcessor
from processor.models import DispatchResult, Event
from processor.timestamps import parse_iso8601, utc_now
from reminders.lifecycle import ReminderLifecycleManager
from storage.event_store import EventStore
from storage.reminder_store import ReminderStore

logger = logging.getLogger(__name__)


class EventService:
    """
    Validates event requests, writes them to the Event Store and keeps the
    reminder schedule in step.

    The event write is the primary operation. Reminder scheduling runs after
    it succeeds and its failures are only logged, so a create, update or
    delete reports success even if reminders could not be adjusted.
    """

    def __init__(self, event_store: EventStore, reminder_store: ReminderStore,
                 lifecycle: ReminderLifecycleManager,
                 dispatcher: NotificationDispatcher,
                 processor: Optional[EventProcessor] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.event_store = event_store
        self.reminder_store = reminder_store
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher
        self.processor = processor or EventProcessor()
        self.clock = clock

    def create_event(self, body: Optional[Dict[str, Any]]) -> Event:
        """
        Create an event and schedule its reminders.

        Raises:
            ValidationError: If the body is invalid
        """
        event_input = self.processor.process_event(body)
        event = self.event_store.create_event(event_input, self.clock())
        self.lifecycle.on_event_created(event)
        return event

    def get_event(self, event_id: str) -> Event:
        event_id = self.processor.validate_event_id(event_id)
        event = self.event_store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def update_event(self, event_id: str, body: Optional[Dict[str, Any]]) -> Event:
        """
        Replace an event's fields and recompute its reminders.

        Raises:
            ValidationError: If the id or body is invalid
            EventNotFoundError: If no event has this id
        """
        event_id = self.processor.validate_event_id(event_id)
        event_input = self.processor.process_event(body)

        event = self.event_store.update_event(event_id, event_input, self.clock())
        if event is None:
            raise EventNotFoundError(event_id)

        self.lifecycle.on_event_updated(event)
        return event

    def delete_event(self, event_id: str) -> None:
        """
        Delete an event and cancel its unsent reminders.

        Raises:
            ValidationError: If the id is malformed
            EventNotFoundError: If no event has this id
        """
        event_id = self.processor.validate_event_id(event_id)
        if not self.event_store.delete_event(event_id):
            raise EventNotFoundError(event_id)
        self.lifecycle.on_event_deleted(event_id)

    def list_events(self, start: Optional[str] = None,
                    end: Optional[str] = None) -> List[Event]:
        """
        List events overlapping [start, end), or all events without a range.

        Raises:
            ValidationError: If a range bound cannot be parsed
        """
        range_start, range_end = self.parse_range(start, end)
        return self.event_store.list_events(range_start, range_end)

    def parse_range(self, start: Optional[str], end: Optional[str]):
        """Parse optional query range bounds; both must be given to filter."""
        if not (start and end):
            return None, None

        range_start = parse_iso8601(start)
        range_end = parse_iso8601(end)
        if range_start is None or range_end is None:
            raise ValidationError('Invalid start or end query parameter')
        return range_start, range_end

    def upcoming_events(self, limit: Any = 10) -> List[Event]:
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid limit: {limit}")
        if limit < 1:
            raise ValidationError(f"Invalid limit: {limit}")
        return self.event_store.list_upcoming(self.clock(), limit)

    def event_stats(self) -> Dict[str, int]:
        """Count all events, those from this month on, and today's (UTC)."""
        now = self.clock()
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        end_of_today = start_of_today + timedelta(days=1)

        return {
            'total': self.event_store.count_events(),
            'thisMonth': self.event_store.count_events(start_from=start_of_month),
            'today': self.event_store.count_events(
                start_from=start_of_today, start_before=end_of_today
            )
        }

    def list_reminders(self) -> List[Dict[str, Any]]:
        """All reminders sorted by scheduled time, each with its event embedded."""
        reminders = self.reminder_store.list_reminders()
        events: Dict[str, Optional[Event]] = {}

        results = []
        for reminder in reminders:
            if reminder.event_id not in events:
                events[reminder.event_id] = self.event_store.get_event(reminder.event_id)
            event = events[reminder.event_id]

            data = reminder.to_dict()
            data['event'] = event.to_dict() if event else None
            results.append(data)
        return results

    def send_test_reminder(self, event_id: str,
                           reminder_type: Optional[str] = None) -> DispatchResult:
        """
        Dispatch a reminder for an event immediately.

        Debug hook: bypasses the sweeper and leaves the Reminder Store as is.

        Raises:
            ValidationError: If the id or reminder type is invalid
            EventNotFoundError: If no event has this id
        """
        parsed_type = self.processor.parse_reminder_type(reminder_type)
        event = self.get_event(event_id)
        return self.dispatcher.dispatch(event, parsed_type)
