"""Event processor for validating and normalizing event request data."""
import logging
import re
import uuid
from typing import Any, Dict, Optional

from processor.errors import ValidationError
from processor.models import DEFAULT_COLOR, EventInput, ReminderType
from processor.timestamps import parse_iso8601

logger = logging.getLogger(__name__)

COLOR_PATTERN = re.compile(r'^#[0-9A-F]{6}$', re.IGNORECASE)

# Short names accepted by the debug reminder endpoint
REMINDER_TYPE_ALIASES = {
    '1day': ReminderType.ONE_DAY_BEFORE,
    '1hour': ReminderType.ONE_HOUR_BEFORE,
}


class EventProcessor:
    """Processor for validating and normalizing event data."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    def process_event(self, body: Optional[Dict[str, Any]]) -> EventInput:
        """
        Validate and normalize a create/update request body.

        Args:
            body: Decoded JSON request body

        Returns:
            EventInput ready to be written to the Event Store

        Raises:
            ValidationError: If required fields are missing or malformed
        """
        if not isinstance(body, dict):
            raise ValidationError('Request body must be a JSON object')

        self._validate_required_fields(body)

        start = parse_iso8601(body['start'])
        if start is None:
            raise ValidationError(f"Invalid start time: {body['start']}")

        end = parse_iso8601(body['end'])
        if end is None:
            raise ValidationError(f"Invalid end time: {body['end']}")

        if end < start:
            raise ValidationError('End time must not be before start time')

        color = self._normalize_color(body.get('color'))

        # Truncate fields to maximum length
        title = self._clean_text(body['title'])[:self.MAX_TITLE_LENGTH]
        description = self._clean_text(body.get('description'))[:self.MAX_DESCRIPTION_LENGTH]

        return EventInput(
            title=title,
            start=start,
            end=end,
            description=description,
            location=self._clean_text(body.get('location')),
            all_day=bool(body.get('allDay')),
            color=color,
            user_email=self._clean_text(body.get('userEmail')).lower(),
            reminders_enabled=body.get('remindersEnabled') is not False
        )

    def _validate_required_fields(self, body: Dict[str, Any]) -> None:
        """
        Validate that required fields are present and non-empty.

        Args:
            body: Request body to validate

        Raises:
            ValidationError: If title, start or end is missing
        """
        title = body.get('title')
        if not isinstance(title, str) or not title.strip():
            logger.warning("Event missing required field: title")
            raise ValidationError('Title, start, and end are required')

        for name in ('start', 'end'):
            if not body.get(name):
                logger.warning(f"Event '{title}' missing required field: {name}")
                raise ValidationError('Title, start, and end are required')

    def _normalize_color(self, color: Any) -> str:
        if color is None or color == '':
            return DEFAULT_COLOR
        if not isinstance(color, str) or not COLOR_PATTERN.match(color.strip()):
            raise ValidationError(f"Invalid color: {color}")
        return color.strip()

    def _clean_text(self, value: Any) -> str:
        if value is None:
            return ''
        return str(value).strip()

    def validate_event_id(self, event_id: Optional[str]) -> str:
        """
        Check that an event id is a well-formed UUID.

        Args:
            event_id: Id taken from the request path

        Returns:
            The canonical id string

        Raises:
            ValidationError: If the id is malformed
        """
        try:
            return str(uuid.UUID(str(event_id)))
        except (TypeError, ValueError):
            raise ValidationError('Invalid event ID')

    def parse_reminder_type(self, value: Optional[str]) -> ReminderType:
        """
        Resolve a reminder type name, defaulting to one hour before.

        Raises:
            ValidationError: If the name is not a known reminder type
        """
        if value is None or value == '':
            return ReminderType.ONE_HOUR_BEFORE
        if value in REMINDER_TYPE_ALIASES:
            return REMINDER_TYPE_ALIASES[value]
        try:
            return ReminderType(value)
        except ValueError:
            raise ValidationError(f"Invalid reminder type: {value}")
