"""Unit tests for the DynamoDB Reminder Store."""
from datetime import timedelta

from conftest import NOW, REMINDERS_TABLE
from processor.models import ReminderCandidate, ReminderType
from storage.reminder_store import ReminderStore

EVENT_ID = '5f0c6c1e-5c1a-4a8e-9c7e-2b1f0f6d8a11'
OTHER_EVENT_ID = '0b9d2c47-1e3f-4a5b-8c6d-7e8f9a0b1c2d'
LEASE_UNTIL = NOW + timedelta(minutes=5)


def candidates(start):
    return [
        ReminderCandidate(ReminderType.ONE_DAY_BEFORE, start - timedelta(hours=24)),
        ReminderCandidate(ReminderType.ONE_HOUR_BEFORE, start - timedelta(hours=1)),
    ]


def insert_one(reminder_store, scheduled_time=NOW):
    [reminder] = reminder_store.insert_reminders(EVENT_ID, [
        ReminderCandidate(ReminderType.ONE_HOUR_BEFORE, scheduled_time),
    ], NOW)
    return reminder


def send(reminder_store, reminder, token='token', sent_at=NOW):
    """Claim and mark a reminder sent the way a sweep does."""
    assert reminder_store.claim(
        reminder.event_id, reminder.reminder_id, token, sent_at, sent_at + timedelta(minutes=5)
    )
    assert reminder_store.mark_sent(reminder.event_id, reminder.reminder_id, token, sent_at)


def raw_item(reminder_store, reminder):
    return reminder_store.table.get_item(
        Key={'event_id': reminder.event_id, 'reminder_id': reminder.reminder_id}
    )['Item']


def test_insert_reminders(reminder_store):
    """Test insert_reminders writes unsent reminders for the event."""
    start = NOW + timedelta(days=2)

    inserted = reminder_store.insert_reminders(EVENT_ID, candidates(start), NOW)

    assert len(inserted) == 2
    stored = reminder_store.list_reminders_for_event(EVENT_ID)
    assert {r.reminder_type for r in stored} == {
        ReminderType.ONE_DAY_BEFORE, ReminderType.ONE_HOUR_BEFORE
    }
    assert all(r.sent is False and r.sent_at is None for r in stored)


def test_insert_reminders_empty_is_noop(reminder_store):
    assert reminder_store.insert_reminders(EVENT_ID, [], NOW) == []
    assert reminder_store.list_reminders() == []


def test_insert_reminders_large_batch(reminder_store):
    """Test inserting more than 25 reminders (batch limit)."""
    many = [
        ReminderCandidate(ReminderType.ONE_HOUR_BEFORE, NOW + timedelta(minutes=i))
        for i in range(30)
    ]

    reminder_store.insert_reminders(EVENT_ID, many, NOW)

    assert len(reminder_store.list_reminders()) == 30
    assert len(reminder_store.list_reminders_for_event(EVENT_ID)) == 30


def test_find_due_reminders(reminder_store):
    """Test only unsent reminders at or before now are due."""
    reminder_store.insert_reminders(EVENT_ID, [
        ReminderCandidate(ReminderType.ONE_DAY_BEFORE, NOW - timedelta(minutes=5)),
        ReminderCandidate(ReminderType.ONE_HOUR_BEFORE, NOW + timedelta(minutes=5)),
    ], NOW)
    reminder_store.insert_reminders(OTHER_EVENT_ID, [
        ReminderCandidate(ReminderType.ONE_HOUR_BEFORE, NOW),
    ], NOW)

    due = reminder_store.find_due_reminders(NOW)

    assert [(r.event_id, r.reminder_type) for r in due] == [
        (EVENT_ID, ReminderType.ONE_DAY_BEFORE),
        (OTHER_EVENT_ID, ReminderType.ONE_HOUR_BEFORE),
    ]


def test_find_due_reminders_excludes_sent(reminder_store):
    reminder = insert_one(reminder_store, NOW - timedelta(minutes=1))
    send(reminder_store, reminder)

    assert reminder_store.find_due_reminders(NOW) == []


def test_cancel_unsent_reminders_keeps_sent(reminder_store):
    """Test cancel_unsent_reminders only deletes unsent reminders of the event."""
    day, hour = reminder_store.insert_reminders(EVENT_ID, candidates(NOW + timedelta(days=2)), NOW)
    reminder_store.insert_reminders(OTHER_EVENT_ID, candidates(NOW + timedelta(days=2)), NOW)
    send(reminder_store, day)

    cancelled = reminder_store.cancel_unsent_reminders(EVENT_ID)

    assert cancelled == 1
    remaining = reminder_store.list_reminders_for_event(EVENT_ID)
    assert [r.reminder_id for r in remaining] == [day.reminder_id]
    assert remaining[0].sent is True
    assert len(reminder_store.list_reminders_for_event(OTHER_EVENT_ID)) == 2


def test_cancel_unsent_reminders_none_exist(reminder_store):
    assert reminder_store.cancel_unsent_reminders(EVENT_ID) == 0


def test_cancel_keeps_reminder_sent_after_it_was_read(reminder_store):
    """Test a reminder a sweep marks sent between the read and the delete survives."""
    reminder = insert_one(reminder_store)
    query_event = reminder_store._query_event

    def query_then_sweep(event_id, filter_expression=None):
        found = query_event(event_id, filter_expression)
        send(reminder_store, reminder)
        return found

    reminder_store._query_event = query_then_sweep

    cancelled = reminder_store.cancel_unsent_reminders(EVENT_ID)

    assert cancelled == 0
    stored = reminder_store.get_reminder(reminder.event_id, reminder.reminder_id)
    assert stored is not None
    assert stored.sent is True


def test_event_reminders_are_read_right_after_write(reminder_store):
    """Test a cancel straight after an insert sees every reminder it must delete."""
    reminder_store.insert_reminders(EVENT_ID, candidates(NOW + timedelta(days=2)), NOW)

    assert reminder_store.cancel_unsent_reminders(EVENT_ID) == 2
    assert reminder_store.list_reminders_for_event(EVENT_ID) == []

    reminder_store.insert_reminders(EVENT_ID, candidates(NOW + timedelta(days=3)), NOW)

    assert reminder_store.cancel_unsent_reminders(EVENT_ID) == 2
    assert reminder_store.list_reminders() == []


def test_reminders_table_is_keyed_by_event(dynamodb):
    """Test per-event reads go to the base table rather than an index."""
    description = dynamodb.meta.client.describe_table(TableName=REMINDERS_TABLE)['Table']

    assert description['KeySchema'] == [
        {'AttributeName': 'event_id', 'KeyType': 'HASH'},
        {'AttributeName': 'reminder_id', 'KeyType': 'RANGE'}
    ]
    assert 'GlobalSecondaryIndexes' not in description


def test_reminders_table_expires_on_ttl(dynamodb):
    response = dynamodb.meta.client.describe_time_to_live(TableName=REMINDERS_TABLE)

    assert response['TimeToLiveDescription']['TimeToLiveStatus'] == 'ENABLED'
    assert response['TimeToLiveDescription']['AttributeName'] == 'ttl'


def test_mark_sent_sets_ttl(reminder_store):
    """Test a sent reminder expires after the retention period."""
    reminder = insert_one(reminder_store)
    assert 'ttl' not in raw_item(reminder_store, reminder)

    send(reminder_store, reminder)

    assert int(raw_item(reminder_store, reminder)['ttl']) == int(
        (NOW + timedelta(days=30)).timestamp()
    )


def test_sent_retention_is_configurable(dynamodb):
    store = ReminderStore(REMINDERS_TABLE, dynamodb=dynamodb, sent_retention=timedelta(days=7))
    reminder = insert_one(store)

    send(store, reminder)

    assert int(raw_item(store, reminder)['ttl']) == int((NOW + timedelta(days=7)).timestamp())


def test_claim_is_exclusive_until_lease_expires(reminder_store):
    """Test a live claim blocks other claims and an expired one does not."""
    reminder = insert_one(reminder_store)
    key = (reminder.event_id, reminder.reminder_id)

    assert reminder_store.claim(*key, 'first', NOW, LEASE_UNTIL) is True
    assert reminder_store.claim(*key, 'second', NOW, LEASE_UNTIL) is False

    after_lease = LEASE_UNTIL + timedelta(seconds=1)
    assert reminder_store.claim(
        *key, 'second', after_lease, after_lease + timedelta(minutes=5)
    ) is True


def test_claim_missing_reminder(reminder_store):
    assert reminder_store.claim(EVENT_ID, 'missing', 'token', NOW, LEASE_UNTIL) is False
    assert reminder_store.list_reminders() == []


def test_mark_sent_requires_matching_claim(reminder_store):
    """Test the sent transition is conditional on holding the claim."""
    reminder = insert_one(reminder_store)
    key = (reminder.event_id, reminder.reminder_id)
    reminder_store.claim(*key, 'mine', NOW, LEASE_UNTIL)

    assert reminder_store.mark_sent(*key, 'theirs', NOW) is False
    assert reminder_store.mark_sent(*key, 'mine', NOW) is True
    assert reminder_store.mark_sent(*key, 'mine', NOW) is False

    stored = reminder_store.get_reminder(*key)
    assert stored.sent is True
    assert stored.sent_at == NOW


def test_sent_reminder_cannot_be_claimed(reminder_store):
    reminder = insert_one(reminder_store)
    send(reminder_store, reminder, token='mine')

    later = NOW + timedelta(hours=1)
    assert reminder_store.claim(
        reminder.event_id, reminder.reminder_id, 'again', later, later
    ) is False


def test_release_claim(reminder_store):
    reminder = insert_one(reminder_store)
    key = (reminder.event_id, reminder.reminder_id)
    reminder_store.claim(*key, 'mine', NOW, LEASE_UNTIL)

    assert reminder_store.release_claim(*key, 'theirs') is False
    assert reminder_store.release_claim(*key, 'mine') is True
    assert reminder_store.claim(*key, 'next', NOW, LEASE_UNTIL) is True


def test_delete_unsent_reminder(reminder_store):
    unsent, sent = reminder_store.insert_reminders(EVENT_ID, candidates(NOW), NOW)
    send(reminder_store, sent, token='mine')

    assert reminder_store.delete_unsent_reminder(unsent.event_id, unsent.reminder_id) is True
    assert reminder_store.delete_unsent_reminder(sent.event_id, sent.reminder_id) is False
    assert reminder_store.delete_unsent_reminder(EVENT_ID, 'missing') is False
    assert reminder_store.get_reminder(unsent.event_id, unsent.reminder_id) is None
    assert reminder_store.get_reminder(sent.event_id, sent.reminder_id) is not None


def test_to_dict_shape(reminder_store):
    reminder = insert_one(reminder_store)

    data = reminder.to_dict()

    assert data == {
        'id': reminder.reminder_id,
        'eventId': EVENT_ID,
        'type': 'one-hour-before',
        'scheduledTime': '2024-01-15T12:00:00.000Z',
        'sent': False
    }
