"""Formats and sends reminder notifications."""
import html
import logging

from processor.models import DispatchResult, Event, ReminderType
from notifications.transports import EmailMessage, EmailTransport

logger = logging.getLogger(__name__)

DEFAULT_SENDER = 'noreply@calendar-app.com'


class NotificationDispatcher:
    """Dispatcher for reminder emails."""

    def __init__(self, transport: EmailTransport, sender: str = DEFAULT_SENDER):
        """
        Initialize the dispatcher.

        Args:
            transport: Email transport used to deliver messages
            sender: From address of reminder emails
        """
        self.transport = transport
        self.sender = sender

    def dispatch(self, event: Event, reminder_type: ReminderType) -> DispatchResult:
        """
        Send a reminder for an event.

        A missing recipient is a successful no-op. Transport failures are
        logged and reported as an unsuccessful result, never raised.

        Args:
            event: Event the reminder is about
            reminder_type: Lead time of the reminder

        Returns:
            DispatchResult describing the outcome
        """
        if not event.user_email:
            logger.info(
                f"Reminder notification for event \"{event.title}\" "
                f"({reminder_type.label} before) - No email configured"
            )
            return DispatchResult(success=True, delivered=False)

        message = self.build_message(event, reminder_type)

        try:
            self.transport.send(message)
        except Exception as e:
            logger.error(
                f"Error sending reminder email to {event.user_email}: {e}",
                extra={'event_id': event.event_id, 'error_type': type(e).__name__},
                exc_info=True
            )
            return DispatchResult(success=False, error=str(e))

        logger.info(
            f"Reminder email sent to {event.user_email} for event: {event.title}"
        )
        return DispatchResult(success=True, delivered=True)

    def build_message(self, event: Event, reminder_type: ReminderType) -> EmailMessage:
        """
        Render the reminder email for an event.

        Args:
            event: Event the reminder is about
            reminder_type: Lead time of the reminder

        Returns:
            EmailMessage with subject, HTML and plain text bodies
        """
        time_text = reminder_type.label
        event_date = format_event_start(event)

        text_lines = [
            'Event Reminder',
            '',
            f"This is a reminder that your event \"{event.title}\" is starting in {time_text}.",
            f"Date & Time: {event_date}",
        ]
        html_lines = [
            '<h2>Event Reminder</h2>',
            f"<p>This is a reminder that your event \"<strong>{html.escape(event.title)}</strong>\" "
            f"is starting in {time_text}.</p>",
            f"<p><strong>Date &amp; Time:</strong> {html.escape(event_date)}</p>",
        ]

        if event.location:
            text_lines.append(f"Location: {event.location}")
            html_lines.append(
                f"<p><strong>Location:</strong> {html.escape(event.location)}</p>"
            )
        if event.description:
            text_lines.append(f"Description: {event.description}")
            html_lines.append(
                f"<p><strong>Description:</strong> {html.escape(event.description)}</p>"
            )

        text_lines.append("Don't forget to prepare for your event!")
        html_lines.append("<p>Don't forget to prepare for your event!</p>")

        return EmailMessage(
            sender=self.sender,
            recipient=event.user_email,
            subject=f"Reminder: {event.title} in {time_text}",
            html_body='\n'.join(html_lines),
            text_body='\n'.join(text_lines)
        )


def format_event_start(event: Event) -> str:
    """Human readable start time, date only for all-day events."""
    if event.all_day:
        return event.start.strftime('%A, %B %d, %Y (all day)')
    return event.start.strftime('%A, %B %d, %Y at %I:%M %p UTC')
