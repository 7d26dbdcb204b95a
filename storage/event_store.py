"""DynamoDB-backed store for calendar events."""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import Event, EventInput
from processor.timestamps import from_storage, to_storage
from storage.schema import dynamodb_resource

logger = logging.getLogger(__name__)


class EventStore:
    """Event Store operations on the events table."""

    def __init__(self, table_name: str, dynamodb=None):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the events table
            dynamodb: Optional boto3 DynamoDB resource to share a connection
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or dynamodb_resource()
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized EventStore for table: {table_name}")

    def check_connection(self) -> None:
        """
        Verify the table is reachable by loading its metadata.

        Raises:
            ClientError: If the table does not exist or cannot be reached
        """
        self.table.load()
        logger.info(f"Connected to DynamoDB table: {self.table_name}")

    def create_event(self, event_input: EventInput, now: datetime) -> Event:
        """
        Insert a new event with a freshly assigned id.

        Args:
            event_input: Validated event fields
            now: Creation timestamp

        Returns:
            The stored Event
        """
        event = Event(
            event_id=str(uuid.uuid4()),
            title=event_input.title,
            description=event_input.description,
            location=event_input.location,
            start=event_input.start,
            end=event_input.end,
            all_day=event_input.all_day,
            color=event_input.color,
            user_email=event_input.user_email,
            reminders_enabled=event_input.reminders_enabled,
            created_at=now,
            updated_at=now
        )

        try:
            self.table.put_item(
                Item=self._event_to_item(event),
                ConditionExpression=Attr('event_id').not_exists()
            )
        except ClientError as e:
            logger.error(f"Error creating event '{event.title}': {e}")
            raise

        logger.info(f"Created event {event.event_id}: {event.title}")
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        """Fetch an event by id, or None if it does not exist."""
        try:
            response = self.table.get_item(Key={'event_id': event_id})
        except ClientError as e:
            logger.error(f"Error fetching event {event_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return self._item_to_event(item)

    def update_event(self, event_id: str, event_input: EventInput,
                     now: datetime) -> Optional[Event]:
        """
        Replace the mutable fields of an existing event.

        Args:
            event_id: Id of the event to update
            event_input: Validated event fields
            now: Update timestamp

        Returns:
            The updated Event, or None if no event has this id
        """
        fields = {
            'title': event_input.title,
            'description': event_input.description,
            'location': event_input.location,
            'start_time': to_storage(event_input.start),
            'end_time': to_storage(event_input.end),
            'all_day': event_input.all_day,
            'color': event_input.color,
            'user_email': event_input.user_email,
            'reminders_enabled': event_input.reminders_enabled,
            'updated_at': to_storage(now)
        }

        # Placeholders for every name since some collide with reserved words
        try:
            response = self.table.update_item(
                Key={'event_id': event_id},
                UpdateExpression='SET ' + ', '.join(
                    f"#{name} = :{name}" for name in fields
                ),
                ExpressionAttributeNames={f"#{name}": name for name in fields},
                ExpressionAttributeValues={
                    f":{name}": value for name, value in fields.items()
                },
                ConditionExpression=Attr('event_id').exists(),
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.info(f"Update skipped, event {event_id} does not exist")
                return None
            logger.error(f"Error updating event {event_id}: {e}")
            raise

        logger.info(f"Updated event {event_id}")
        return self._item_to_event(response['Attributes'])

    def delete_event(self, event_id: str) -> bool:
        """
        Delete an event.

        Returns:
            True if an event was deleted, False if none had this id
        """
        try:
            response = self.table.delete_item(
                Key={'event_id': event_id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            raise

        deleted = 'Attributes' in response
        if deleted:
            logger.info(f"Deleted event {event_id}")
        return deleted

    def list_events(self, range_start: Optional[datetime] = None,
                    range_end: Optional[datetime] = None) -> List[Event]:
        """
        List events, optionally only those overlapping a time range.

        An event overlaps when it starts before the range end and ends after
        the range start.

        Args:
            range_start: Start of the visible range
            range_end: End of the visible range

        Returns:
            Events sorted by start time
        """
        filter_expression = None
        if range_start and range_end:
            filter_expression = (
                Attr('start_time').lt(to_storage(range_end)) &
                Attr('end_time').gt(to_storage(range_start))
            )

        events = self._scan(filter_expression)
        return sorted(events, key=lambda event: event.start)

    def list_upcoming(self, now: datetime, limit: int = 10) -> List[Event]:
        """Return the next events starting at or after now."""
        events = self._scan(Attr('start_time').gte(to_storage(now)))
        events.sort(key=lambda event: event.start)
        return events[:limit]

    def count_events(self, start_from: Optional[datetime] = None,
                     start_before: Optional[datetime] = None) -> int:
        """Count events whose start falls within [start_from, start_before)."""
        filter_expression = None
        if start_from:
            filter_expression = Attr('start_time').gte(to_storage(start_from))
        if start_before:
            condition = Attr('start_time').lt(to_storage(start_before))
            filter_expression = (
                condition if filter_expression is None
                else filter_expression & condition
            )

        return len(self._scan(filter_expression))

    def _scan(self, filter_expression=None) -> List[Event]:
        """
        Scan the events table, following pagination.

        Args:
            filter_expression: Optional boto3 condition to filter items

        Returns:
            List of Event objects
        """
        scan_kwargs = {}
        if filter_expression is not None:
            scan_kwargs['FilterExpression'] = filter_expression

        try:
            response = self.table.scan(**scan_kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **scan_kwargs
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning events table: {e}")
            raise

        events = []
        for item in items:
            event = self._item_to_event(item)
            if event:
                events.append(event)
        return events

    def _item_to_event(self, item: dict) -> Optional[Event]:
        """
        Convert DynamoDB item to Event object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Event object or None if conversion fails
        """
        try:
            return Event(
                event_id=item['event_id'],
                title=item['title'],
                description=item.get('description', ''),
                location=item.get('location', ''),
                start=from_storage(item['start_time']),
                end=from_storage(item['end_time']),
                all_day=bool(item.get('all_day', False)),
                color=item.get('color', ''),
                user_email=item.get('user_email', ''),
                reminders_enabled=bool(item.get('reminders_enabled', True)),
                created_at=from_storage(item['created_at']),
                updated_at=from_storage(item['updated_at'])
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to Event: {e}")
            return None

    def _event_to_item(self, event: Event) -> dict:
        return {
            'event_id': event.event_id,
            'title': event.title,
            'description': event.description,
            'location': event.location,
            'start_time': to_storage(event.start),
            'end_time': to_storage(event.end),
            'all_day': event.all_day,
            'color': event.color,
            'user_email': event.user_email,
            'reminders_enabled': event.reminders_enabled,
            'created_at': to_storage(event.created_at),
            'updated_at': to_storage(event.updated_at)
        }
