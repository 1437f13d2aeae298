"""
Outbound Mail Transports.

The email sink hands a MailMessage to a transport. SmtpTransport delivers
through an SMTP relay; InMemoryTransport keeps messages in a list, which
is handy for tests and for hosts that forward mail some other way.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    """An HTML e-mail ready for delivery."""
    sender: str
    recipients: List[str] = field(default_factory=list)
    subject: str = ""
    html_body: str = ""

    def to_email_message(self) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        message["Subject"] = self.subject
        message.set_content("This report is best viewed as HTML.")
        message.add_alternative(self.html_body, subtype="html")
        return message


@runtime_checkable
class MailTransport(Protocol):
    """
    Protocol for mail transports.

    ``send`` may raise; the capture pipeline isolates the failure.
    """

    def send(self, message: MailMessage) -> None:
        ...


class SmtpTransport:
    """
    Deliver mail through an SMTP server.

    A connection is opened per message; capture events are rare enough
    that pooling is not worth the state.

    Args:
        host: SMTP server host
        port: SMTP server port
        timeout: Socket timeout in seconds
        username: Login user (no login if None)
        password: Login password
        use_tls: Upgrade the connection with STARTTLS
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        timeout: float = 10.0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def send(self, message: MailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message.to_email_message())
        logger.debug("Sent '%s' to %s via %s:%s", message.subject,
                     message.recipients, self.host, self.port)


class InMemoryTransport:
    """Collect messages in ``outbox`` instead of sending them."""

    def __init__(self):
        self.outbox: List[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.outbox.append(message)
