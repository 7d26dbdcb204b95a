"""AWS Lambda handler running one reminder sweep tick (EventBridge schedule)."""
import json
import logging
import time
from typing import Any, Dict

from app_logging import setup_logging
from config import Settings
from services.container import build_services

logger = logging.getLogger(__name__)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Dispatch every due reminder once.

    The schedule rule fires every minute. Overlapping invocations are safe:
    each reminder is claimed before it is dispatched.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and sweep statistics
    """
    settings = Settings.from_env()
    setup_logging(settings.log_level, service='reminder-sweep')

    start_time = time.time()
    logger.info(
        "Reminder sweep started",
        extra={'reminders_table': settings.reminders_table}
    )

    try:
        services = build_services(settings)
        result = services.sweeper.sweep()

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Error processing reminders: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Reminder sweep failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time
    logger.info(
        "Reminder sweep completed",
        extra={
            'duration_seconds': round(duration, 2),
            'due': result.due,
            'sent': result.sent,
            'failed': result.failed
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Reminder sweep completed',
            'statistics': {
                'due': result.due,
                'sent': result.sent,
                'skipped': result.skipped,
                'orphans_removed': result.orphans_removed,
                'failed': result.failed,
                'duration_seconds': round(duration, 2)
            },
            'errors': result.errors
        })
    }
