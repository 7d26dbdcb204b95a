"""Data models for calendar events and reminders."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from processor.timestamps import to_api

DEFAULT_COLOR = '#1a73e8'


class ReminderType(str, Enum):
    """Lead time of a reminder relative to the event start."""
    ONE_DAY_BEFORE = 'one-day-before'
    ONE_HOUR_BEFORE = 'one-hour-before'

    @property
    def lead_time(self) -> timedelta:
        if self is ReminderType.ONE_DAY_BEFORE:
            return timedelta(hours=24)
        return timedelta(hours=1)

    @property
    def label(self) -> str:
        """Human readable time until the event starts."""
        if self is ReminderType.ONE_DAY_BEFORE:
            return '1 day'
        return '1 hour'


@dataclass
class EventInput:
    """Validated create/update request body."""
    title: str
    start: datetime
    end: datetime
    description: str = ''
    location: str = ''
    all_day: bool = False
    color: str = DEFAULT_COLOR
    user_email: str = ''
    reminders_enabled: bool = True


@dataclass
class Event:
    """Stored calendar event."""
    event_id: str
    title: str
    description: str
    location: str
    start: datetime
    end: datetime
    all_day: bool
    color: str
    user_email: str
    reminders_enabled: bool
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the API response shape."""
        return {
            'id': self.event_id,
            'title': self.title,
            'description': self.description,
            'location': self.location,
            'start': to_api(self.start),
            'end': to_api(self.end),
            'allDay': self.all_day,
            'color': self.color,
            'userEmail': self.user_email,
            'remindersEnabled': self.reminders_enabled,
            'createdAt': to_api(self.created_at),
            'updatedAt': to_api(self.updated_at),
        }


@dataclass(frozen=True)
class ReminderCandidate:
    """A reminder instant derived from an event, not yet persisted."""
    reminder_type: ReminderType
    scheduled_time: datetime


@dataclass
class Reminder:
    """Stored reminder for an event."""
    reminder_id: str
    event_id: str
    reminder_type: ReminderType
    scheduled_time: datetime
    sent: bool = False
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.reminder_id,
            'eventId': self.event_id,
            'type': self.reminder_type.value,
            'scheduledTime': to_api(self.scheduled_time),
            'sent': self.sent,
        }
        if self.sent_at:
            data['sentAt'] = to_api(self.sent_at)
        return data


@dataclass
class ExternalEvent:
    """Read-only event merged in from an external calendar."""
    event_id: str
    title: str
    start: datetime
    end: datetime
    description: str
    location: str
    color: str
    all_day: bool
    source: str = 'google'
    html_link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.event_id,
            'title': self.title,
            'start': to_api(self.start),
            'end': to_api(self.end),
            'description': self.description,
            'location': self.location,
            'color': self.color,
            'allDay': self.all_day,
            'source': self.source,
            'htmlLink': self.html_link,
        }


@dataclass
class DispatchResult:
    """Outcome of a notification dispatch."""
    success: bool
    delivered: bool = False
    error: Optional[str] = None


@dataclass
class SweepResult:
    """Result of one reminder sweep tick."""
    due: int = 0
    sent: int = 0
    skipped: int = 0
    orphans_removed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
