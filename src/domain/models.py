"""
Data models for the enrollment notification domain.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

ENROLL_INTENT = 'enroll'
DEFAULT_GREETING_NAME = 'there'
STATUS_SENT = 'sent'
STATUS_FAILED = 'failed'


def normalize_text(value: Any) -> str:
    """Trim string values; anything that is not a string counts as empty."""
    return value.strip() if isinstance(value, str) else ''


@dataclass
class LeadRecord:
    """
    Normalized view of a lead document snapshot.

    Attributes:
        intent: Lowercased, trimmed intent ("" when absent)
        email: Lowercased, trimmed recipient address ("" when absent)
        full_name: Trimmed display name (None when absent or blank)
        email_status: Lowercased, trimmed status written by a previous run
    """
    intent: str = ''
    email: str = ''
    full_name: Optional[str] = None
    email_status: str = ''

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any]) -> 'LeadRecord':
        """
        Build a LeadRecord from raw document fields.

        Args:
            snapshot: Deserialized document attributes

        Returns:
            LeadRecord with every field normalized
        """
        return cls(
            intent=normalize_text(snapshot.get('intent')).lower(),
            email=normalize_text(snapshot.get('email')).lower(),
            full_name=normalize_text(snapshot.get('fullName')) or None,
            email_status=normalize_text(snapshot.get('emailStatus')).lower(),
        )

    @property
    def is_enrollment(self) -> bool:
        return self.intent == ENROLL_INTENT

    @property
    def already_sent(self) -> bool:
        return self.email_status == STATUS_SENT

    @property
    def greeting_name(self) -> str:
        return self.full_name or DEFAULT_GREETING_NAME


@dataclass
class LeadEvent:
    """
    A document-creation trigger for one lead.

    Attributes:
        event_id: Stream record identifier
        table_name: Table holding the lead document
        key: Deserialized primary key used to write back to the document
        app_id: Parent identifier (namespace the lead belongs to)
        lead_id: Lead document identifier
        snapshot: Deserialized document fields (None if not delivered)
    """
    event_id: str
    table_name: str
    key: Dict[str, Any]
    app_id: str
    lead_id: str
    snapshot: Optional[Dict[str, Any]] = None

    @property
    def document_path(self) -> str:
        return f"artifacts/{self.app_id}/public/data/leads/{self.lead_id}"

    @property
    def log_ids(self) -> str:
        """Correlation identifiers for log lines."""
        return f"leadId={self.lead_id}, appId={self.app_id}"


@dataclass
class WelcomeMessage:
    """Outbound welcome email handed to the mail transport."""
    from_address: str
    to: str
    subject: str
    text: str
    html: str


@dataclass
class DeliveryResult:
    """
    Result of a single mail transport call.

    Transport exceptions are mapped onto this type at the call boundary
    so failure handling is an explicit branch.
    """
    success: bool
    error_message: Optional[str] = None

    @classmethod
    def ok(cls) -> 'DeliveryResult':
        return cls(success=True)

    @classmethod
    def failed(cls, message: str) -> 'DeliveryResult':
        return cls(success=False, error_message=message)


class NotificationAction(Enum):
    """What an invocation ended up doing with a lead."""
    NO_SNAPSHOT = 'no_snapshot'
    NOT_ENROLLMENT = 'not_enrollment'
    ALREADY_SENT = 'already_sent'
    MISSING_EMAIL = 'missing_email'
    SENT = 'sent'
    DELIVERY_FAILED = 'delivery_failed'


@dataclass
class NotificationOutcome:
    """
    Result of processing one lead event.

    Attributes:
        action: Branch the notifier took
        lead_id: Lead document identifier (if known)
        error_message: Value recorded in emailError (failure branches only)
        write_back_ok: False when the status merge could not be persisted
        written_fields: Fields merged onto the document (empty on silent exits)
    """
    action: NotificationAction
    lead_id: Optional[str] = None
    error_message: Optional[str] = None
    write_back_ok: bool = True
    written_fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def mutated(self) -> bool:
        return bool(self.written_fields)

    @property
    def success(self) -> bool:
        """True when no failure was recorded for this lead."""
        return self.write_back_ok and self.action not in (
            NotificationAction.MISSING_EMAIL,
            NotificationAction.DELIVERY_FAILED,
        )

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.error_message:
            return (
                f"NotificationOutcome(action={self.action.value}, lead_id={self.lead_id}, "
                f"error={self.error_message})"
            )
        return f"NotificationOutcome(action={self.action.value}, lead_id={self.lead_id})"
