"""
Enrollment notifier - core business logic.

For each newly created lead document:
1. Skip leads whose intent is not "enroll"
2. Record a permanent failure when the email field is missing
3. Skip leads already marked emailStatus="sent" (idempotency guard)
4. Send the welcome email through SMTP
5. Merge the delivery outcome back onto the document

The "sent" guard is read from the trigger snapshot and the write-back is
unconditional, so two concurrent redeliveries of the same event can both
send. Only a prior success blocks a new attempt; a prior failure is retried
whenever the platform redelivers the event.

All errors are caught and reported through NotificationOutcome.
No exceptions propagate out of the public methods.
"""

import logging
from typing import Any, Callable, Dict, Optional

from .models import (
    LeadEvent,
    LeadRecord,
    NotificationAction,
    NotificationOutcome,
    STATUS_FAILED,
    STATUS_SENT,
)
from services import leads as lead_service
from services.smtp import SmtpMailer, SmtpSettings, PROVIDER_NAME
from services.welcome import WelcomeContent, build_welcome_message

logger = logging.getLogger(__name__)

MISSING_EMAIL_ERROR = 'Missing email field on enrollment document'
CREATION_EVENT = 'INSERT'


class EnrollmentNotifier:
    """
    Sends welcome emails to enrolling leads and records the outcome.

    Collaborators are passed in explicitly so the notifier can be built
    once per container and exercised in isolation in tests.
    """

    def __init__(
        self,
        smtp_settings: SmtpSettings,
        lead_store: lead_service.LeadStore,
        content: Optional[WelcomeContent] = None,
        mailer: Optional[SmtpMailer] = None,
        parent_key: str = 'appId',
        id_key: str = 'leadId',
        default_table_name: str = '',
        clock: Callable[[], str] = lead_service.server_timestamp
    ):
        self.smtp_settings = smtp_settings
        self.lead_store = lead_store
        self.content = content or WelcomeContent()
        self.mailer = mailer or SmtpMailer(smtp_settings)
        self.parent_key = parent_key
        self.id_key = id_key
        self.default_table_name = default_table_name
        self.clock = clock

    def process_stream_record(self, record: Dict[str, Any]) -> Optional[NotificationOutcome]:
        """
        Process a single DynamoDB Streams record.

        Args:
            record: Stream record from the Lambda event

        Returns:
            NotificationOutcome, or None when the record is not a lead
            creation event (MODIFY/REMOVE, or no usable key)
        """
        event_id = record.get('eventID', 'UNKNOWN')
        event_name = record.get('eventName', '')

        if event_name != CREATION_EVENT:
            logger.debug(f"Ignoring {event_name or 'unknown'} stream record {event_id}")
            return None

        try:
            event = self._parse_stream_record(record)
        except Exception as e:
            logger.warning(f"Malformed lead stream record {event_id}: {e}")
            return None

        return self.handle(event)

    def handle(self, event: LeadEvent) -> NotificationOutcome:
        """
        Run the notification decision sequence for one lead.

        Args:
            event: Lead creation event

        Returns:
            NotificationOutcome describing the branch taken
        """
        if event.snapshot is None:
            logger.warning(
                f"Lead trigger fired without snapshot: eventId={event.event_id}, {event.log_ids}"
            )
            return NotificationOutcome(NotificationAction.NO_SNAPSHOT, lead_id=event.lead_id)

        lead = LeadRecord.from_snapshot(event.snapshot)

        if not lead.is_enrollment:
            return NotificationOutcome(NotificationAction.NOT_ENROLLMENT, lead_id=event.lead_id)

        if not lead.email:
            fields = {
                'emailStatus': STATUS_FAILED,
                'emailError': MISSING_EMAIL_ERROR,
                'emailProcessedAt': self.clock(),
            }
            write_back_ok = self._write_back(event, fields)
            logger.error(f"Enrollment lead is missing email: {event.log_ids}")
            return NotificationOutcome(
                NotificationAction.MISSING_EMAIL,
                lead_id=event.lead_id,
                error_message=MISSING_EMAIL_ERROR,
                write_back_ok=write_back_ok,
                written_fields=fields,
            )

        if lead.already_sent:
            return NotificationOutcome(NotificationAction.ALREADY_SENT, lead_id=event.lead_id)

        message = build_welcome_message(
            self.content,
            sender_address=self.smtp_settings.username,
            recipient=lead.email,
            greeting_name=lead.greeting_name,
        )
        result = self.mailer.send(message)

        if result.success:
            fields = {
                'emailStatus': STATUS_SENT,
                'emailSentAt': self.clock(),
                'emailProvider': PROVIDER_NAME,
            }
            write_back_ok = self._write_back(event, fields)
            logger.info(f"Welcome email sent: {event.log_ids}, to={lead.email}")
            return NotificationOutcome(
                NotificationAction.SENT,
                lead_id=event.lead_id,
                write_back_ok=write_back_ok,
                written_fields=fields,
            )

        fields = {
            'emailStatus': STATUS_FAILED,
            'emailError': result.error_message,
            'emailProcessedAt': self.clock(),
        }
        write_back_ok = self._write_back(event, fields)
        logger.error(
            f"Failed to send welcome email: {event.log_ids}, to={lead.email}, "
            f"message={result.error_message}"
        )
        return NotificationOutcome(
            NotificationAction.DELIVERY_FAILED,
            lead_id=event.lead_id,
            error_message=result.error_message,
            write_back_ok=write_back_ok,
            written_fields=fields,
        )

    def _parse_stream_record(self, record: Dict[str, Any]) -> LeadEvent:
        """
        Convert a stream record into a LeadEvent.

        Raises:
            ValueError: If the record has no key or no resolvable table
        """
        stream = record.get('dynamodb') or {}
        key = lead_service.deserialize_image(stream.get('Keys'))
        if not key:
            raise ValueError("Stream record has no Keys")

        table_name = (
            lead_service.table_name_from_arn(record.get('eventSourceARN', ''))
            or self.default_table_name
        )
        if not table_name:
            raise ValueError("Cannot resolve leads table from eventSourceARN")

        return LeadEvent(
            event_id=record.get('eventID', 'UNKNOWN'),
            table_name=table_name,
            key=key,
            app_id=str(key.get(self.parent_key, '')),
            lead_id=str(key.get(self.id_key, '')),
            snapshot=lead_service.deserialize_image(stream.get('NewImage')),
        )

    def _write_back(self, event: LeadEvent, fields: Dict[str, Any]) -> bool:
        """Merge status fields onto the lead. Returns False if the write failed."""
        try:
            self.lead_store.merge_fields(event.table_name, event.key, fields)
        except Exception as e:
            logger.error(
                f"Failed to record email status on {event.document_path}: {event.log_ids}, "
                f"error={e}",
                exc_info=True
            )
            return False
        return True
