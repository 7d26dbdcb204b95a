"""Outbound email transports for reminder notifications."""
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from typing import Optional

import boto3

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    """Rendered reminder email."""
    sender: str
    recipient: str
    subject: str
    html_body: str
    text_body: str


class EmailTransport:
    """Interface for sending a rendered message. Raises on failure."""

    def send(self, message: EmailMessage) -> None:
        raise NotImplementedError


class SmtpEmailTransport(EmailTransport):
    """Send email through an SMTP server."""

    def __init__(self, host: str, port: int = 587, username: str = '',
                 password: str = '', use_tls: bool = True, timeout: int = 30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        mime = MimeMessage()
        mime['From'] = message.sender
        mime['To'] = message.recipient
        mime['Subject'] = message.subject
        mime.set_content(message.text_body)
        mime.add_alternative(message.html_body, subtype='html')

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(mime)


class SesEmailTransport(EmailTransport):
    """Send email through Amazon SES."""

    def __init__(self, region_name: Optional[str] = None, client=None):
        if client is None:
            kwargs = {'region_name': region_name} if region_name else {}
            client = boto3.client('ses', **kwargs)
        self.client = client

    def send(self, message: EmailMessage) -> None:
        response = self.client.send_email(
            Source=message.sender,
            Destination={'ToAddresses': [message.recipient]},
            Message={
                'Subject': {'Data': message.subject, 'Charset': 'UTF-8'},
                'Body': {
                    'Text': {'Data': message.text_body, 'Charset': 'UTF-8'},
                    'Html': {'Data': message.html_body, 'Charset': 'UTF-8'}
                }
            }
        )
        logger.debug(f"SES accepted message {response.get('MessageId')}")


class LoggingEmailTransport(EmailTransport):
    """Development transport: log a preview instead of sending."""

    def send(self, message: EmailMessage) -> None:
        logger.info(
            "Development mode - Email would be sent",
            extra={
                'from': message.sender,
                'to': message.recipient,
                'subject': message.subject,
                'body': message.text_body
            }
        )


def build_transport(settings) -> EmailTransport:
    """
    Select the email transport for the configured environment.

    Args:
        settings: Application Settings

    Returns:
        EmailTransport instance
    """
    if settings.is_development:
        logger.info("Email sending disabled in development mode")
        return LoggingEmailTransport()

    if settings.email_transport == 'ses':
        return SesEmailTransport(region_name=settings.aws_region)

    return SmtpEmailTransport(
        host=settings.email_host,
        port=settings.email_port,
        username=settings.email_user,
        password=settings.email_password,
        use_tls=settings.email_use_tls,
        timeout=settings.request_timeout
    )
