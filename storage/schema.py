"""DynamoDB connection and table definitions for events and reminders."""
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

TTL_ATTRIBUTE = 'ttl'


def dynamodb_resource(region_name: Optional[str] = None,
                      endpoint_url: Optional[str] = None):
    """
    Create a DynamoDB service resource.

    Args:
        region_name: AWS region, or None for the boto3 default
        endpoint_url: Override endpoint, e.g. a local DynamoDB instance

    Returns:
        boto3 DynamoDB resource
    """
    kwargs = {}
    if region_name:
        kwargs['region_name'] = region_name
    if endpoint_url:
        kwargs['endpoint_url'] = endpoint_url
    return boto3.resource('dynamodb', **kwargs)


def create_tables(dynamodb, events_table: str, reminders_table: str) -> None:
    """
    Create the events and reminders tables if they do not exist yet.

    Used for local development and tests; production tables are provisioned
    with the rest of the infrastructure. Sent reminders expire through the
    reminders table's TTL on the `ttl` attribute.

    Args:
        dynamodb: boto3 DynamoDB resource
        events_table: Name of the events table
        reminders_table: Name of the reminders table
    """
    _create_table(
        dynamodb,
        TableName=events_table,
        KeySchema=[
            {'AttributeName': 'event_id', 'KeyType': 'HASH'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'event_id', 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )

    created = _create_table(
        dynamodb,
        TableName=reminders_table,
        KeySchema=[
            {'AttributeName': 'event_id', 'KeyType': 'HASH'},
            {'AttributeName': 'reminder_id', 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'event_id', 'AttributeType': 'S'},
            {'AttributeName': 'reminder_id', 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )
    if created:
        dynamodb.meta.client.update_time_to_live(
            TableName=reminders_table,
            TimeToLiveSpecification={'Enabled': True, 'AttributeName': TTL_ATTRIBUTE}
        )
        logger.info(f"Enabled TTL on {reminders_table}.{TTL_ATTRIBUTE}")


def _create_table(dynamodb, **definition) -> bool:
    """Create a table and wait for it. Returns False if it already existed."""
    table_name = definition['TableName']
    try:
        table = dynamodb.create_table(**definition)
        table.wait_until_exists()
        logger.info(f"Created DynamoDB table: {table_name}")
    except ClientError as e:
        if e.response['Error']['Code'] == 'ResourceInUseException':
            logger.info(f"DynamoDB table already exists: {table_name}")
            return False
        raise
    return True
