"""Routing of organizer messages to a transport by contact kind."""
import html
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from processor.contacts import ContactKind, classify_contact
from processor.models import Event

if TYPE_CHECKING:
    from storage.event_store import DynamoDBEventStore

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = 'https://api.telegram.org'


class MessageSender(ABC):
    """Transport able to deliver a message for one contact kind."""

    CONTACT_KIND: ContactKind

    def can_handle(self, kind: ContactKind) -> bool:
        return kind == self.CONTACT_KIND

    @abstractmethod
    def send_message(self, event: Event, message: str) -> bool:
        """Deliver message about event to its organizer; False on failure."""


class EmailSender(MessageSender):
    """Sends HTML email through Amazon SES."""

    CONTACT_KIND = ContactKind.EMAIL

    def __init__(self, sender_address: str, ses_client=None):
        self.sender_address = sender_address
        self.ses = ses_client or boto3.client('ses')

    def send_message(self, event: Event, message: str) -> bool:
        try:
            self.ses.send_email(
                Source=self.sender_address,
                Destination={'ToAddresses': [event.organizer_contact]},
                Message={
                    'Subject': {'Data': f"Regarding Event: {event.name}", 'Charset': 'UTF-8'},
                    'Body': {'Html': {'Data': self.render(event, message), 'Charset': 'UTF-8'}},
                }
            )
            logger.info(f"Email sent to {event.organizer_contact}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {event.organizer_contact}: {e}")
            return False

    @staticmethod
    def render(event: Event, message: str) -> str:
        """HTML body with the message followed by the event details."""
        details = [
            f"<li><strong>Date:</strong> {event.date.strftime('%Y-%m-%d %H:%M')}</li>",
            f"<li><strong>Location:</strong> {html.escape(event.location)}</li>",
        ]
        if event.price is not None:
            details.append(f"<li><strong>Price:</strong> {event.price}</li>")
        if event.participants_count is not None:
            details.append(f"<li><strong>Participants:</strong> {event.participants_count}</li>")

        return (
            f"<html><body><h2>Regarding Event: {html.escape(event.name)}</h2>"
            f"<p>{html.escape(message)}</p>"
            f"<h3>Event Details:</h3><ul>{''.join(details)}</ul>"
            "<p>Please reply to this email if you have any questions.</p></body></html>"
        )


class TelegramSender(MessageSender):
    """Sends chat messages through the Telegram Bot API."""

    CONTACT_KIND = ContactKind.CHAT_HANDLE

    def __init__(self, bot_token: str, timeout: float = 10):
        self.bot_token = bot_token
        self.timeout = timeout

    def send_message(self, event: Event, message: str) -> bool:
        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        text = f"{event.name} ({event.date.strftime('%d.%m.%Y %H:%M')}, {event.location})\n\n{message}"
        try:
            response = requests.post(
                url,
                json={'chat_id': event.organizer_contact, 'text': text},
                timeout=self.timeout
            )
            response.raise_for_status()
            logger.info(f"Telegram message sent to {event.organizer_contact}")
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to send Telegram message to {event.organizer_contact}: {e}")
            return False


class MessageRouter:
    """Picks the first sender able to handle an organizer contact."""

    def __init__(
        self,
        senders: List[MessageSender],
        store: Optional['DynamoDBEventStore'] = None
    ):
        self.senders = senders
        self.store = store

    def route(self, contact: Optional[str]) -> Optional[MessageSender]:
        """
        Select a transport for a contact string.

        Args:
            contact: Organizer contact as stored on the event

        Returns:
            Matching sender, or None (phone numbers have no transport)
        """
        classified = classify_contact(contact)
        if classified is None:
            return None
        for sender in self.senders:
            if sender.can_handle(classified.kind):
                return sender
        return None

    def dispatch(self, event: Event, message: str) -> bool:
        """
        Send a message to the event organizer and record it on success.

        Returns:
            True if a sender accepted the message
        """
        sender = self.route(event.organizer_contact)
        if sender is None:
            logger.warning(f"No sender can handle contact {event.organizer_contact!r}")
            return False

        if not sender.send_message(event, message):
            return False

        if self.store is not None:
            self.store.mark_message_sent(self.store.generate_event_id(event))
        return True
