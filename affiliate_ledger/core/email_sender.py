"""
Outbound email transport.

Ledger code only needs a plain-text send. ConsoleEmailSender logs the message
and is the default; a deployment wires a real transport with set_email_sender().
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    """Abstract base class for email senders"""

    @abstractmethod
    def send_email(
        self,
        to_email: str,
        subject: str,
        body_text: str,
    ) -> bool:
        """
        Send a plain-text email

        Returns:
            True if the email was handed off, False otherwise
        """
        pass


class ConsoleEmailSender(EmailSender):
    """Logs emails instead of sending them"""

    def send_email(self, to_email: str, subject: str, body_text: str) -> bool:
        logger.info(f"[EMAIL] To: {to_email} | Subject: {subject}\n{body_text}")
        return True


_email_sender: Optional[EmailSender] = None


def get_email_sender() -> EmailSender:
    global _email_sender
    if _email_sender is None:
        _email_sender = ConsoleEmailSender()
    return _email_sender


def set_email_sender(sender: Optional[EmailSender]) -> None:
    """Swap the transport (tests, runtime configuration). None resets to the console sender."""
    global _email_sender
    _email_sender = sender
