"""DynamoDB-backed store for event reminders."""
import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from processor.models import Reminder, ReminderCandidate, ReminderType
from processor.timestamps import ensure_utc, from_storage, to_storage
from storage.schema import TTL_ATTRIBUTE, dynamodb_resource

logger = logging.getLogger(__name__)


def _condition_failed(error: ClientError) -> bool:
    return error.response['Error']['Code'] == 'ConditionalCheckFailedException'


class ReminderStore:
    """
    Reminder Store operations on the reminders table.

    Items are keyed by event_id (partition) and reminder_id (sort), so the
    reminders of one event are read with a strongly consistent query.
    """

    BATCH_SIZE = 25  # DynamoDB batch operation limit
    SENT_RETENTION_DAYS = 30

    def __init__(self, table_name: str, dynamodb=None,
                 sent_retention: Optional[timedelta] = None):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the reminders table
            dynamodb: Optional boto3 DynamoDB resource to share a connection
            sent_retention: How long sent reminders are kept before the
                table's TTL removes them
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or dynamodb_resource()
        self.table = self.dynamodb.Table(table_name)
        self.sent_retention = sent_retention or timedelta(days=self.SENT_RETENTION_DAYS)
        logger.info(f"Initialized ReminderStore for table: {table_name}")

    def check_connection(self) -> None:
        """Verify the table is reachable by loading its metadata."""
        self.table.load()
        logger.info(f"Connected to DynamoDB table: {self.table_name}")

    def insert_reminders(self, event_id: str,
                         candidates: List[ReminderCandidate],
                         now: datetime) -> List[Reminder]:
        """
        Write new unsent reminders for an event in batches of 25 items.

        Args:
            event_id: Id of the owning event
            candidates: Derived reminder instants
            now: Creation timestamp

        Returns:
            The stored Reminder objects
        """
        if not candidates:
            return []

        reminders = [
            Reminder(
                reminder_id=str(uuid.uuid4()),
                event_id=event_id,
                reminder_type=candidate.reminder_type,
                scheduled_time=candidate.scheduled_time,
                sent=False,
                created_at=now
            )
            for candidate in candidates
        ]

        for i in range(0, len(reminders), self.BATCH_SIZE):
            batch = reminders[i:i + self.BATCH_SIZE]
            try:
                with self.table.batch_writer() as writer:
                    for reminder in batch:
                        writer.put_item(Item=self._reminder_to_item(reminder))
            except ClientError as e:
                logger.error(
                    f"Error writing reminder batch {i // self.BATCH_SIZE + 1} "
                    f"for event {event_id}: {e}"
                )
                raise

        logger.info(f"Scheduled {len(reminders)} reminders for event {event_id}")
        return reminders

    def list_reminders_for_event(self, event_id: str) -> List[Reminder]:
        """Return every reminder (sent or not) of an event."""
        return self._query_event(event_id)

    def cancel_unsent_reminders(self, event_id: str) -> int:
        """
        Delete all unsent reminders of an event.

        Each delete is conditional on the reminder still being unsent, so a
        reminder a sweep marks sent in the meantime is kept as history.

        Args:
            event_id: Id of the owning event

        Returns:
            Count of deleted reminders
        """
        unsent = self._query_event(event_id, Attr('sent').eq(False))

        deleted = 0
        for reminder in unsent:
            if self.delete_unsent_reminder(event_id, reminder.reminder_id):
                deleted += 1

        if deleted:
            logger.info(f"Cancelled {deleted} unsent reminders for event {event_id}")
        return deleted

    def find_due_reminders(self, now: datetime) -> List[Reminder]:
        """
        Find unsent reminders scheduled at or before now.

        Args:
            now: Current time

        Returns:
            Due reminders, earliest first
        """
        reminders = self._scan(
            Attr('sent').eq(False) &
            Attr('scheduled_time').lte(to_storage(now))
        )
        return sorted(reminders, key=lambda reminder: reminder.scheduled_time)

    def list_reminders(self) -> List[Reminder]:
        """Return all reminders sorted by scheduled time."""
        reminders = self._scan()
        return sorted(reminders, key=lambda reminder: reminder.scheduled_time)

    def claim(self, event_id: str, reminder_id: str, token: str, now: datetime,
              lease_until: datetime) -> bool:
        """
        Take a dispatch lease on an unsent reminder.

        Succeeds only if the reminder is unsent and no other sweep holds a
        live claim on it.

        Args:
            event_id: Id of the owning event
            reminder_id: Reminder to claim
            token: Unique token identifying this claim
            now: Current time, used to detect expired claims
            lease_until: Time at which the claim expires

        Returns:
            True if the claim was taken, False otherwise
        """
        try:
            self.table.update_item(
                Key=self._key(event_id, reminder_id),
                UpdateExpression='SET claim_token = :token, claim_expires_at = :expires',
                ExpressionAttributeValues={
                    ':token': token,
                    ':expires': to_storage(lease_until)
                },
                ConditionExpression=(
                    Attr('reminder_id').exists() &
                    Attr('sent').eq(False) &
                    (Attr('claim_expires_at').not_exists() |
                     Attr('claim_expires_at').lt(to_storage(now)))
                )
            )
        except ClientError as e:
            if _condition_failed(e):
                logger.info(f"Reminder {reminder_id} is sent or claimed elsewhere")
                return False
            logger.error(f"Error claiming reminder {reminder_id}: {e}")
            raise
        return True

    def mark_sent(self, event_id: str, reminder_id: str, token: str,
                  sent_at: datetime) -> bool:
        """
        Transition a claimed reminder to sent.

        Conditional on the reminder still being unsent and held by this claim.
        The sent reminder gets a ttl so the table expires it after the
        retention period.

        Returns:
            True if this call marked the reminder sent
        """
        try:
            self.table.update_item(
                Key=self._key(event_id, reminder_id),
                UpdateExpression=(
                    'SET #sent = :sent, sent_at = :sent_at, #ttl = :ttl '
                    'REMOVE claim_token, claim_expires_at'
                ),
                ExpressionAttributeNames={'#sent': 'sent', '#ttl': TTL_ATTRIBUTE},
                ExpressionAttributeValues={
                    ':sent': True,
                    ':sent_at': to_storage(sent_at),
                    ':ttl': self._calculate_ttl(sent_at)
                },
                ConditionExpression=(
                    Attr('sent').eq(False) & Attr('claim_token').eq(token)
                )
            )
        except ClientError as e:
            if _condition_failed(e):
                logger.warning(
                    f"Reminder {reminder_id} was not marked sent: claim lost or already sent"
                )
                return False
            logger.error(f"Error marking reminder {reminder_id} as sent: {e}")
            raise
        return True

    def release_claim(self, event_id: str, reminder_id: str, token: str) -> bool:
        """Drop a claim so the reminder can be retried by the next sweep."""
        try:
            self.table.update_item(
                Key=self._key(event_id, reminder_id),
                UpdateExpression='REMOVE claim_token, claim_expires_at',
                ConditionExpression=Attr('claim_token').eq(token)
            )
        except ClientError as e:
            if _condition_failed(e):
                return False
            logger.error(f"Error releasing claim on reminder {reminder_id}: {e}")
            raise
        return True

    def delete_unsent_reminder(self, event_id: str, reminder_id: str) -> bool:
        """Delete a single reminder if it exists and has not been sent."""
        try:
            self.table.delete_item(
                Key=self._key(event_id, reminder_id),
                ConditionExpression=Attr('sent').eq(False)
            )
        except ClientError as e:
            if _condition_failed(e):
                return False
            logger.error(f"Error deleting reminder {reminder_id}: {e}")
            raise
        return True

    def get_reminder(self, event_id: str, reminder_id: str) -> Optional[Reminder]:
        try:
            response = self.table.get_item(
                Key=self._key(event_id, reminder_id),
                ConsistentRead=True
            )
        except ClientError as e:
            logger.error(f"Error fetching reminder {reminder_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return self._item_to_reminder(item)

    def _key(self, event_id: str, reminder_id: str) -> dict:
        return {'event_id': event_id, 'reminder_id': reminder_id}

    def _calculate_ttl(self, sent_at: datetime) -> int:
        """Unix timestamp at which a reminder sent at sent_at expires."""
        return int((ensure_utc(sent_at) + self.sent_retention).timestamp())

    def _query_event(self, event_id: str, filter_expression=None) -> List[Reminder]:
        query_kwargs = {
            'KeyConditionExpression': Key('event_id').eq(event_id),
            'ConsistentRead': True
        }
        if filter_expression is not None:
            query_kwargs['FilterExpression'] = filter_expression

        try:
            response = self.table.query(**query_kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.query(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **query_kwargs
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error querying reminders for event {event_id}: {e}")
            raise

        return [
            reminder for reminder in map(self._item_to_reminder, items)
            if reminder
        ]

    def _scan(self, filter_expression=None) -> List[Reminder]:
        scan_kwargs = {}
        if filter_expression is not None:
            scan_kwargs['FilterExpression'] = filter_expression

        try:
            response = self.table.scan(**scan_kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **scan_kwargs
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning reminders table: {e}")
            raise

        return [
            reminder for reminder in map(self._item_to_reminder, items)
            if reminder
        ]

    def _item_to_reminder(self, item: dict) -> Optional[Reminder]:
        """
        Convert DynamoDB item to Reminder object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Reminder object or None if conversion fails
        """
        try:
            return Reminder(
                reminder_id=item['reminder_id'],
                event_id=item['event_id'],
                reminder_type=ReminderType(item['reminder_type']),
                scheduled_time=from_storage(item['scheduled_time']),
                sent=bool(item.get('sent', False)),
                sent_at=from_storage(item['sent_at']) if item.get('sent_at') else None,
                created_at=from_storage(item['created_at']) if item.get('created_at') else None
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to Reminder: {e}")
            return None

    def _reminder_to_item(self, reminder: Reminder) -> dict:
        item = {
            'reminder_id': reminder.reminder_id,
            'event_id': reminder.event_id,
            'reminder_type': reminder.reminder_type.value,
            'scheduled_time': to_storage(reminder.scheduled_time),
            'sent': reminder.sent
        }

        # Add optional fields if present
        if reminder.sent_at:
            item['sent_at'] = to_storage(reminder.sent_at)
        if reminder.created_at:
            item['created_at'] = to_storage(reminder.created_at)

        return item
