"""AWS Lambda handler for the Calendar REST API (API Gateway proxy)."""
import base64
import binascii
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from app_logging import setup_logging
from config import Settings
from processor.errors import EventNotFoundError, ValidationError
from services.container import Services, build_services

logger = logging.getLogger(__name__)


class ApiRequest:
    """The parts of an API Gateway proxy event the routes need."""

    def __init__(self, event: Dict[str, Any]):
        request_context = event.get('requestContext') or {}
        http = request_context.get('http') or {}

        self.method = (event.get('httpMethod') or http.get('method') or 'GET').upper()
        self.path = event.get('path') or event.get('rawPath') or '/'
        self.query = event.get('queryStringParameters') or {}
        self._body = event.get('body')
        self._is_base64 = bool(event.get('isBase64Encoded'))

    def json_body(self) -> Optional[Dict[str, Any]]:
        """
        Decode the JSON request body.

        Raises:
            ValidationError: If the body is not valid JSON
        """
        if self._body is None or self._body == '':
            return {}

        try:
            raw = self._body
            if self._is_base64:
                raw = base64.b64decode(raw, validate=True).decode('utf-8')
            return json.loads(raw)
        except (TypeError, ValueError, binascii.Error, UnicodeDecodeError):
            raise ValidationError('Request body is not valid JSON')


def health(services: Services, request: ApiRequest, match: re.Match):
    return 200, {'status': 'OK', 'message': 'Calendar API is running'}


def list_events(services: Services, request: ApiRequest, match: re.Match):
    start = request.query.get('start')
    end = request.query.get('end')
    events = [event.to_dict() for event in services.event_service.list_events(start, end)]

    if str(request.query.get('includeHolidays', '')).lower() == 'true':
        events.extend(_holiday_events(services, start, end))

    return 200, events


def _holiday_events(services: Services, start: Optional[str],
                    end: Optional[str]) -> List[Dict[str, Any]]:
    range_start, range_end = services.event_service.parse_range(start, end)
    if range_start is None:
        return []

    try:
        holidays = services.holiday_client.fetch_events(range_start, range_end)
    except Exception as e:
        # Holidays are display-only; local events are still returned
        logger.error(
            f"Error fetching holiday events: {e}",
            extra={'error_type': type(e).__name__}
        )
        return []

    return [holiday.to_dict() for holiday in holidays]


def create_event(services: Services, request: ApiRequest, match: re.Match):
    event = services.event_service.create_event(request.json_body())
    return 201, event.to_dict()


def upcoming_events(services: Services, request: ApiRequest, match: re.Match):
    events = services.event_service.upcoming_events(request.query.get('limit', 10))
    return 200, [event.to_dict() for event in events]


def event_stats(services: Services, request: ApiRequest, match: re.Match):
    return 200, services.event_service.event_stats()


def get_event(services: Services, request: ApiRequest, match: re.Match):
    return 200, services.event_service.get_event(match.group('event_id')).to_dict()


def update_event(services: Services, request: ApiRequest, match: re.Match):
    event = services.event_service.update_event(
        match.group('event_id'), request.json_body()
    )
    return 200, event.to_dict()


def delete_event(services: Services, request: ApiRequest, match: re.Match):
    services.event_service.delete_event(match.group('event_id'))
    return 200, {'message': 'Event deleted successfully'}


def list_reminders(services: Services, request: ApiRequest, match: re.Match):
    return 200, services.event_service.list_reminders()


def send_test_reminder(services: Services, request: ApiRequest, match: re.Match):
    body = request.json_body() or {}
    result = services.event_service.send_test_reminder(
        match.group('event_id'), body.get('type')
    )
    if not result.success:
        return 502, {'error': 'Failed to send test reminder', 'detail': result.error}
    return 200, {
        'message': 'Test reminder sent successfully',
        'delivered': result.delivered
    }


# (method, path pattern, handler, message returned on server errors)
ROUTES = [
    ('GET', r'/api/health', health, 'Health check failed'),
    ('GET', r'/api/events/upcoming', upcoming_events, 'Failed to fetch upcoming events'),
    ('GET', r'/api/events/stats', event_stats, 'Failed to fetch statistics'),
    ('GET', r'/api/events', list_events, 'Failed to fetch events'),
    ('POST', r'/api/events', create_event, 'Failed to create event'),
    ('GET', r'/api/events/(?P<event_id>[^/]+)', get_event, 'Failed to fetch event'),
    ('PUT', r'/api/events/(?P<event_id>[^/]+)', update_event, 'Failed to update event'),
    ('DELETE', r'/api/events/(?P<event_id>[^/]+)', delete_event, 'Failed to delete event'),
    ('GET', r'/api/reminders', list_reminders, 'Failed to fetch reminders'),
    ('POST', r'/api/reminders/test/(?P<event_id>[^/]+)', send_test_reminder,
     'Failed to send test reminder'),
]
COMPILED_ROUTES = [
    (method, re.compile(f"^{pattern}/?$"), handler, failure_message)
    for method, pattern, handler, failure_message in ROUTES
]


def match_route(method: str, path: str):
    """
    Find the route for a request.

    Returns:
        (handler, match, failure_message), or None when no route matches.
        A path that matches with another method yields handler None.
    """
    path_matched = False
    for route_method, pattern, handler, failure_message in COMPILED_ROUTES:
        match = pattern.match(path)
        if not match:
            continue
        path_matched = True
        if route_method == method:
            return handler, match, failure_message

    if path_matched:
        return None, None, None
    return None


def build_response(status_code: int, body: Any, settings: Settings) -> Dict[str, Any]:
    """Build an API Gateway proxy response with CORS headers."""
    response = {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': settings.cors_allow_origin,
            'Access-Control-Allow-Methods': 'GET,POST,PUT,DELETE,OPTIONS',
            'Access-Control-Allow-Headers': 'Content-Type,Authorization'
        },
        'body': json.dumps(body) if body is not None else ''
    }
    return response


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the Calendar API.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Proxy response dict with statusCode, headers and JSON body
    """
    settings = Settings.from_env()
    setup_logging(settings.log_level, service='calendar-api')

    start_time = time.time()
    request = ApiRequest(event)

    if request.method == 'OPTIONS':
        return build_response(204, None, settings)

    route = match_route(request.method, request.path)
    if route is None:
        return build_response(404, {'error': 'Route not found'}, settings)

    handler, match, failure_message = route
    if handler is None:
        return build_response(405, {'error': 'Method not allowed'}, settings)

    logger.info(
        f"{request.method} {request.path}",
        extra={'route': handler.__name__}
    )

    try:
        services = build_services(settings)
        status_code, body = handler(services, request, match)

    except ValidationError as e:
        logger.info(f"Rejected request: {e}", extra={'route': handler.__name__})
        status_code, body = 400, {'error': str(e)}

    except EventNotFoundError as e:
        logger.info(str(e), extra={'route': handler.__name__})
        status_code, body = 404, {'error': 'Event not found'}

    except ClientError as e:
        logger.error(
            f"{failure_message}: {e}",
            extra={
                'route': handler.__name__,
                'error_type': type(e).__name__,
                'error_code': e.response.get('Error', {}).get('Code')
            },
            exc_info=True
        )
        status_code, body = 500, {'error': failure_message}

    except Exception as e:
        logger.error(
            f"{failure_message}: {e}",
            extra={'route': handler.__name__, 'error_type': type(e).__name__},
            exc_info=True
        )
        status_code, body = 500, {'error': failure_message}

    logger.info(
        f"Request completed with status {status_code}",
        extra={
            'route': handler.__name__,
            'duration_seconds': round(time.time() - start_time, 3)
        }
    )
    return build_response(status_code, body, settings)
