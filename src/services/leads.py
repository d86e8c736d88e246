"""
Lead document storage on Amazon DynamoDB.

Reads lead snapshots from DynamoDB Streams images and merges status fields
back onto the originating item with partial updates.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.types import TypeDeserializer
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Configure DynamoDB client with timeouts to prevent infinite hangs
dynamodb_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

_deserializer = TypeDeserializer()


def deserialize_image(image: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convert a DynamoDB Streams image into plain Python values.

    Args:
        image: Attribute-value map, e.g. {"email": {"S": "a@b.com"}}

    Returns:
        Dict of Python values, or None when no image was delivered

    Example:
        >>> deserialize_image({"intent": {"S": "enroll"}})
        {'intent': 'enroll'}
    """
    if image is None:
        return None
    return {name: _deserializer.deserialize(value) for name, value in image.items()}


def table_name_from_arn(event_source_arn: str) -> str:
    """
    Extract the table name from a stream ARN.

    arn:aws:dynamodb:us-east-1:123456789012:table/Leads/stream/2025-01-01T00:00:00.000
    yields "Leads". Returns "" when the ARN has no table segment.
    """
    if not event_source_arn or ':table/' not in event_source_arn:
        return ''
    resource = event_source_arn.split(':table/', 1)[1]
    return resource.split('/', 1)[0]


def server_timestamp() -> str:
    """Write-time timestamp (ISO 8601, UTC) for emailSentAt/emailProcessedAt."""
    return datetime.now(timezone.utc).isoformat()


class LeadStore:
    """
    Partial-field writer for lead documents.

    Only the given attributes are SET; every other attribute on the item is
    left untouched.
    """

    def __init__(self, dynamodb_resource=None):
        self._dynamodb = dynamodb_resource or boto3.resource('dynamodb', config=dynamodb_config)

    def merge_fields(self, table_name: str, key: Dict[str, Any], fields: Dict[str, Any]) -> None:
        """
        Merge fields onto a lead document.

        Args:
            table_name: DynamoDB table name
            key: Primary key of the lead item
            fields: Attribute names and values to set

        Raises:
            ValueError: If table name, key or fields are empty
            ClientError: If the DynamoDB update fails
        """
        if not table_name:
            raise ValueError("DynamoDB table name cannot be empty")
        if not key:
            raise ValueError("Lead key cannot be empty")
        if not fields:
            raise ValueError("Fields to merge cannot be empty")

        names = {}
        values = {}
        assignments = []
        for index, (name, value) in enumerate(fields.items()):
            names[f"#f{index}"] = name
            values[f":v{index}"] = value
            assignments.append(f"#f{index} = :v{index}")

        try:
            self._dynamodb.Table(table_name).update_item(
                Key=key,
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))
            logger.error(
                f"Failed to update lead: table={table_name}, key={key}, "
                f"error_code={error_code}, error_message={error_message}"
            )
            raise

        logger.info(f"Merged {sorted(fields)} onto lead: table={table_name}, key={key}")
