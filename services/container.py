"""Construction of the process-wide services from Settings."""
import logging
from dataclasses import dataclass
from datetime import timedelta

from config import Settings
from holiday_feed.google_calendar import GoogleCalendarClient
from notifications.dispatcher import NotificationDispatcher
from notifications.transports import build_transport
from reminders.lifecycle import ReminderLifecycleManager
from reminders.sweeper import ReminderSweeper
from services.event_service import EventService
from storage.event_store import EventStore
from storage.reminder_store import ReminderStore
from storage.schema import dynamodb_resource

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Services built once and passed explicitly to handlers."""
    dynamodb: object
    event_store: EventStore
    reminder_store: ReminderStore
    dispatcher: NotificationDispatcher
    lifecycle: ReminderLifecycleManager
    sweeper: ReminderSweeper
    event_service: EventService
    holiday_client: GoogleCalendarClient

    def check_connection(self) -> None:
        """Raise if either table cannot be reached."""
        self.event_store.check_connection()
        self.reminder_store.check_connection()

    def close(self) -> None:
        """Close the store connection."""
        self.dynamodb.meta.client.close()
        logger.info("DynamoDB connection closed.")


def build_services(settings: Settings) -> Services:
    """
    Wire stores, dispatcher, reminder components and the event service.

    Args:
        settings: Application Settings

    Returns:
        Services sharing one DynamoDB connection
    """
    dynamodb = dynamodb_resource(
        region_name=settings.aws_region,
        endpoint_url=settings.dynamodb_endpoint_url
    )
    event_store = EventStore(settings.events_table, dynamodb=dynamodb)
    reminder_store = ReminderStore(
        settings.reminders_table,
        dynamodb=dynamodb,
        sent_retention=timedelta(days=settings.sent_retention_days)
    )

    dispatcher = NotificationDispatcher(
        transport=build_transport(settings),
        sender=settings.email_from
    )
    lifecycle = ReminderLifecycleManager(reminder_store)
    sweeper = ReminderSweeper(
        event_store,
        reminder_store,
        dispatcher,
        claim_lease=timedelta(seconds=settings.claim_lease_seconds),
        orphan_max_age=timedelta(days=settings.orphan_max_age_days)
    )
    event_service = EventService(event_store, reminder_store, lifecycle, dispatcher)
    holiday_client = GoogleCalendarClient(
        api_key=settings.google_api_key,
        calendar_id=settings.holiday_calendar_id,
        timeout=settings.request_timeout
    )

    return Services(
        dynamodb=dynamodb,
        event_store=event_store,
        reminder_store=reminder_store,
        dispatcher=dispatcher,
        lifecycle=lifecycle,
        sweeper=sweeper,
        event_service=event_service,
        holiday_client=holiday_client
    )
