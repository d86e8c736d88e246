"""
Welcome email content.

Builds the subject, plain-text body and HTML body sent to new enrollees.
"""

import html
from dataclasses import dataclass
from email.utils import formataddr
from typing import Mapping

from domain.models import WelcomeMessage

DEFAULT_COMMUNITY_LINK = 'https://chat.whatsapp.com/BCeLjXhQHrxFxOlxkb7DPc'
DEFAULT_PROGRAM_NAME = 'PM-X Accelerator'
DEFAULT_SENDER_NAME = 'StepSmart'


@dataclass
class WelcomeContent:
    """
    Branding used in the welcome email.

    Attributes:
        community_link: Promotional link included in every message
        program_name: Program the lead enrolled in
        sender_name: Display name for From and the sign-off
    """
    community_link: str = DEFAULT_COMMUNITY_LINK
    program_name: str = DEFAULT_PROGRAM_NAME
    sender_name: str = DEFAULT_SENDER_NAME

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> 'WelcomeContent':
        return cls(
            community_link=environ.get('WELCOME_COMMUNITY_LINK') or DEFAULT_COMMUNITY_LINK,
            program_name=environ.get('WELCOME_PROGRAM_NAME') or DEFAULT_PROGRAM_NAME,
            sender_name=environ.get('WELCOME_SENDER_NAME') or DEFAULT_SENDER_NAME,
        )


def build_welcome_message(
    content: WelcomeContent,
    sender_address: str,
    recipient: str,
    greeting_name: str
) -> WelcomeMessage:
    """
    Compose the welcome email for one lead.

    Args:
        content: Branding and link
        sender_address: Mailbox used as From (the SMTP login)
        recipient: Lead email address
        greeting_name: Name used in "Hi <name>,"

    Returns:
        WelcomeMessage ready for the mail transport

    Example:
        >>> msg = build_welcome_message(WelcomeContent(), "team@example.com", "a@b.com", "Jane")
        >>> msg.text.splitlines()[0]
        'Hi Jane,'
    """
    subject = f"Welcome to {content.program_name}"

    text = "\n".join([
        f"Hi {greeting_name},",
        "",
        f"Thanks for enrolling in {content.program_name}.",
        f"Join our WhatsApp community: {content.community_link}",
        "",
        f"Team {content.sender_name}",
    ])

    safe_name = html.escape(greeting_name)
    safe_link = html.escape(content.community_link, quote=True)
    html_body = f"""
      <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #0f172a;">
        <p>Hi {safe_name},</p>
        <p>Thanks for enrolling in <strong>{html.escape(content.program_name)}</strong>.</p>
        <p>
          Join our WhatsApp community:
          <a href="{safe_link}" target="_blank" rel="noopener noreferrer">
            Click here
          </a>
        </p>
        <p>Team {html.escape(content.sender_name)}</p>
      </div>
    """

    return WelcomeMessage(
        from_address=formataddr((content.sender_name, sender_address)),
        to=recipient,
        subject=subject,
        text=text,
        html=html_body,
    )
