"""
SMTP delivery for outbound welcome emails.

Port 465 is treated as implicit TLS (SMTP_SSL); any other port connects in
plain text and upgrades with STARTTLS when the server advertises it.
Transport exceptions never escape send(): they come back as a
DeliveryResult carrying the exception message.
"""

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Mapping, Optional

from domain.models import WelcomeMessage, DeliveryResult

logger = logging.getLogger(__name__)

DEFAULT_SMTP_PORT = 587
IMPLICIT_TLS_PORT = 465
PROVIDER_NAME = 'smtp'
UNKNOWN_ERROR_MESSAGE = 'Unknown SMTP error'


def parse_port(value: Optional[str], fallback: int = DEFAULT_SMTP_PORT) -> int:
    """
    Parse a configured port value.

    Args:
        value: Raw port string (may be None or blank)
        fallback: Port used when the value is missing or invalid

    Returns:
        int: Positive port number, or fallback

    Example:
        >>> parse_port("465")
        465
        >>> parse_port("abc")
        587
    """
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        return fallback
    return port if port > 0 else fallback


@dataclass
class SmtpSettings:
    """
    Mail transport settings.

    Attributes:
        host: SMTP server hostname ("" when not configured)
        port: SMTP server port
        username: Login user, also used as the sender address
        password: Login password
    """
    host: str = ''
    port: int = DEFAULT_SMTP_PORT
    username: str = ''
    password: str = ''

    @property
    def use_ssl(self) -> bool:
        """Implicit TLS connection (port 465)."""
        return self.port == IMPLICIT_TLS_PORT

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str],
        overrides: Optional[Mapping[str, str]] = None
    ) -> 'SmtpSettings':
        """
        Build settings from SMTP_* variables.

        Args:
            environ: Environment mapping (usually os.environ)
            overrides: Values from a secret store that win over environ

        Returns:
            SmtpSettings
        """
        values = dict(environ)
        if overrides:
            values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(
            host=str(values.get('SMTP_HOST', '')).strip(),
            port=parse_port(values.get('SMTP_PORT')),
            username=str(values.get('SMTP_USER', '')).strip(),
            password=str(values.get('SMTP_PASS', '')),
        )

    def __repr__(self) -> str:
        # Never log the password
        return (
            f"SmtpSettings(host={self.host}, port={self.port}, "
            f"username={self.username}, use_ssl={self.use_ssl})"
        )


def build_mime_message(message: WelcomeMessage) -> EmailMessage:
    """Build a multipart/alternative MIME message with text and HTML parts."""
    msg = EmailMessage()
    msg['From'] = message.from_address
    msg['To'] = message.to
    msg['Subject'] = message.subject
    msg.set_content(message.text)
    msg.add_alternative(message.html, subtype='html')
    return msg


class SmtpMailer:
    """
    Sends a WelcomeMessage over a single SMTP session.

    One call to send() opens at most one connection; there is no retry.
    """

    provider_name = PROVIDER_NAME

    def __init__(self, settings: SmtpSettings):
        self.settings = settings

    def send(self, message: WelcomeMessage) -> DeliveryResult:
        """
        Deliver a message.

        Args:
            message: Welcome message to send

        Returns:
            DeliveryResult with success=True, or success=False and the
            transport's error message
        """
        if not self.settings.is_configured:
            logger.error("SMTP not configured, cannot send welcome email")
            return DeliveryResult.failed("SMTP not configured (missing SMTP_HOST)")

        try:
            mime_message = build_mime_message(message)
            self._deliver(mime_message)
        except Exception as e:
            error_message = str(e) or UNKNOWN_ERROR_MESSAGE
            logger.error(
                f"SMTP delivery failed: host={self.settings.host}, "
                f"port={self.settings.port}, error={error_message}"
            )
            return DeliveryResult.failed(error_message)

        logger.info(f"SMTP: Email sent to {message.to}")
        return DeliveryResult.ok()

    def _deliver(self, mime_message: EmailMessage) -> None:
        """Open the connection, authenticate and hand over the message."""
        settings = self.settings
        context = ssl.create_default_context()

        if settings.use_ssl:
            with smtplib.SMTP_SSL(settings.host, settings.port, context=context) as server:
                self._login(server)
                server.send_message(mime_message)
        else:
            with smtplib.SMTP(settings.host, settings.port) as server:
                server.ehlo()
                if server.has_extn('starttls'):
                    server.starttls(context=context)
                    server.ehlo()
                self._login(server)
                server.send_message(mime_message)

    def _login(self, server: smtplib.SMTP) -> None:
        if self.settings.username and self.settings.password:
            server.login(self.settings.username, self.settings.password)
