"""Exceptions raised by the calendar service layer."""


class CalendarError(Exception):
    """Base class for calendar service errors."""


class ValidationError(CalendarError):
    """Request data was rejected before any store mutation."""


class EventNotFoundError(CalendarError):
    """The referenced event does not exist."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id
