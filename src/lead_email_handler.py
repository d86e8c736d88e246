"""
AWS Lambda handler for new lead documents delivered by DynamoDB Streams.

Thin orchestration layer that delegates to EnrollmentNotifier.
Policy: Never report batch item failures (no retries). Outcomes are written
onto the lead documents and logged to CloudWatch.
"""

import logging
import os
from typing import Dict, Any, Optional

from domain.enrollment_notifier import EnrollmentNotifier
from services import leads as lead_service
from services import secrets as secret_service
from services.smtp import SmtpSettings
from services.welcome import WelcomeContent

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    formatter = logging.Formatter('%(levelname)s - %(name)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Built on first invocation and reused while the container is warm
_notifier: Optional[EnrollmentNotifier] = None


def load_smtp_settings(environ=None) -> SmtpSettings:
    """
    Load SMTP settings from the environment, overlaid with Secrets Manager.

    A failed secret lookup is logged and the environment values are used;
    the notifier then records the resulting transport failure on each lead.
    """
    environ = os.environ if environ is None else environ
    secret_id = environ.get('SMTP_SECRET_ID', '')

    overrides = None
    if secret_id:
        try:
            overrides = secret_service.fetch_secret_values(secret_id)
        except Exception as e:
            logger.error(f"Could not load SMTP secret {secret_id}: {e}", exc_info=True)

    settings = SmtpSettings.from_env(environ, overrides)
    logger.info(f"SMTP settings loaded: {settings!r}")
    return settings


def build_notifier(environ=None) -> EnrollmentNotifier:
    """Build an EnrollmentNotifier from environment configuration."""
    environ = os.environ if environ is None else environ
    return EnrollmentNotifier(
        smtp_settings=load_smtp_settings(environ),
        lead_store=lead_service.LeadStore(),
        content=WelcomeContent.from_env(environ),
        parent_key=environ.get('LEADS_PARENT_KEY', 'appId'),
        id_key=environ.get('LEADS_ID_KEY', 'leadId'),
        default_table_name=environ.get('LEADS_TABLE_NAME', ''),
    )


def get_notifier() -> EnrollmentNotifier:
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Process lead creation records from a DynamoDB stream.

    Args:
        event: Lambda event with DynamoDB Streams records
        context: Lambda context

    Returns:
        Dict with batchItemFailures (always empty - no retries)
    """
    records = event.get('Records', [])
    logger.info(f"Enrollment notifier - processing batch of {len(records)} record(s)")

    notifier = get_notifier()

    outcomes = []
    for record in records:
        outcome = notifier.process_stream_record(record)
        if outcome is None:
            continue
        outcomes.append(outcome)

        if outcome.success:
            logger.info(f"Processed lead {outcome.lead_id}: {outcome.action.value}")
        else:
            logger.warning(f"Processed lead {outcome.lead_id} with ERRORS: {outcome!r}")

    success_count = sum(1 for o in outcomes if o.success)
    logger.info(
        f"Batch complete: {len(records)} record(s), {len(outcomes)} lead creation(s), "
        f"success={success_count}, errors={len(outcomes) - success_count}"
    )

    return {"batchItemFailures": []}
