"""
AWS Secrets Manager lookup for SMTP credentials.

The secret is expected to be a JSON object using the same keys as the
environment variables, e.g.:

    {"SMTP_HOST": "smtp.example.com", "SMTP_PORT": "465",
     "SMTP_USER": "team@example.com", "SMTP_PASS": "..."}
"""

import json
import logging
from typing import Dict

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

secrets_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)


def fetch_secret_values(secret_id: str, client=None) -> Dict[str, str]:
    """
    Fetch a JSON secret and return its string values.

    Args:
        secret_id: Secret name or ARN
        client: Optional secretsmanager client (created on demand)

    Returns:
        Dict mapping keys to string values

    Raises:
        ValueError: If the secret is missing, not JSON, or not an object
        ClientError: For other Secrets Manager failures
    """
    if not secret_id:
        raise ValueError("Secret id cannot be empty")

    client = client or boto3.client('secretsmanager', config=secrets_config)

    try:
        response = client.get_secret_value(SecretId=secret_id)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code == 'ResourceNotFoundException':
            logger.error(f"Secret not found: {secret_id}")
            raise ValueError(f"Secret not found: {secret_id}")
        logger.error(f"Failed to read secret {secret_id}: {e}")
        raise

    try:
        payload = json.loads(response.get('SecretString') or '')
    except json.JSONDecodeError:
        raise ValueError(f"Secret {secret_id} is not valid JSON")

    if not isinstance(payload, dict):
        raise ValueError(f"Secret {secret_id} must be a JSON object")

    logger.info(f"Loaded secret {secret_id} with keys: {sorted(payload)}")
    return {k: str(v) for k, v in payload.items() if v is not None}
