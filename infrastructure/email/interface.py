"""
Email Service Interface
========================

Contract shared by every email backend. Notification emails and support
ticket emails are both sent through it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class EmailMessage:
    """
    An outgoing email.

    Attributes:
        subject: Subject line
        body: Plain text body
        to: Recipient addresses
        from_email: Sender (DEFAULT_FROM_EMAIL when None)
        html_body: Optional HTML alternative
        reply_to: Optional Reply-To addresses
        tags: Free-form labels used in logs (e.g. the notification type)
    """

    subject: str
    body: str
    to: List[str]
    from_email: Optional[str] = None
    html_body: Optional[str] = None
    reply_to: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


class EmailServiceInterface(ABC):
    """
    Abstract interface for email delivery.

    Concrete implementations:
        - SMTPEmailService: Django mail backend
        - MockEmailService: keeps messages in memory
    """

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        """
        Send one message.

        Returns:
            True when the backend accepted the message

        Raises:
            EmailException: If the backend fails
        """

    def send_bulk(self, messages: List[EmailMessage]) -> int:
        """Send several messages, returning how many were accepted."""
        return sum(1 for message in messages if self.send(message))


class EmailException(Exception):
    """Raised when an email backend cannot deliver a message."""
