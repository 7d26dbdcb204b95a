"""Environment-driven configuration."""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {value!r}, using {default}")
        return default


def _bool_env(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    """Process-wide settings read once at startup."""
    events_table: str = 'calendar-events'
    reminders_table: str = 'calendar-reminders'
    aws_region: Optional[str] = None
    dynamodb_endpoint_url: Optional[str] = None
    log_level: str = 'INFO'
    app_env: str = 'production'
    email_transport: str = 'smtp'
    email_host: str = 'smtp.ethereal.email'
    email_port: int = 587
    email_user: str = ''
    email_password: str = ''
    email_from: str = 'noreply@calendar-app.com'
    email_use_tls: bool = True
    sweep_interval_seconds: int = 60
    claim_lease_seconds: int = 300
    orphan_max_age_days: int = 7
    sent_retention_days: int = 30
    google_api_key: str = ''
    holiday_calendar_id: str = 'en.indian#holiday@group.v.calendar.google.com'
    request_timeout: int = 30
    cors_allow_origin: str = '*'

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == 'development'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read configuration from environment variables.

        Args:
            environ: Mapping to read from, defaults to os.environ

        Returns:
            Settings with defaults for anything unset
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            events_table=env.get('EVENTS_TABLE_NAME', defaults.events_table),
            reminders_table=env.get('REMINDERS_TABLE_NAME', defaults.reminders_table),
            aws_region=env.get('AWS_REGION') or None,
            dynamodb_endpoint_url=env.get('DYNAMODB_ENDPOINT_URL') or None,
            log_level=env.get('LOG_LEVEL', defaults.log_level),
            app_env=env.get('APP_ENV', defaults.app_env),
            email_transport=env.get('EMAIL_TRANSPORT', defaults.email_transport).lower(),
            email_host=env.get('EMAIL_HOST', defaults.email_host),
            email_port=_int_env(env, 'EMAIL_PORT', defaults.email_port),
            email_user=env.get('EMAIL_USER', defaults.email_user),
            email_password=env.get('EMAIL_PASS', defaults.email_password),
            email_from=env.get('EMAIL_FROM', defaults.email_from),
            email_use_tls=_bool_env(env, 'EMAIL_USE_TLS', defaults.email_use_tls),
            sweep_interval_seconds=_int_env(
                env, 'SWEEP_INTERVAL_SECONDS', defaults.sweep_interval_seconds
            ),
            claim_lease_seconds=_int_env(
                env, 'CLAIM_LEASE_SECONDS', defaults.claim_lease_seconds
            ),
            orphan_max_age_days=_int_env(
                env, 'ORPHAN_MAX_AGE_DAYS', defaults.orphan_max_age_days
            ),
            sent_retention_days=_int_env(
                env, 'SENT_REMINDER_RETENTION_DAYS', defaults.sent_retention_days
            ),
            google_api_key=env.get('GOOGLE_API_KEY', defaults.google_api_key),
            holiday_calendar_id=env.get('HOLIDAY_CALENDAR_ID', defaults.holiday_calendar_id),
            request_timeout=_int_env(env, 'REQUEST_TIMEOUT_SECONDS', defaults.request_timeout),
            cors_allow_origin=env.get('CORS_ALLOW_ORIGIN', defaults.cors_allow_origin)
        )
