"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('LOG_LEVEL', 'INFO')


@pytest.fixture
def ddb_image():
    """Build a DynamoDB Streams attribute-value map from plain strings."""
    def _build(**fields):
        return {name: {'S': value} for name, value in fields.items()}
    return _build


@pytest.fixture
def stream_record(ddb_image):
    """Build a DynamoDB Streams record for a lead."""
    def _build(new_image=None, event_name='INSERT', app_id='app-1', lead_id='lead-1',
               include_image=True):
        dynamodb = {
            'Keys': ddb_image(appId=app_id, leadId=lead_id),
            'StreamViewType': 'NEW_IMAGE',
        }
        if include_image:
            dynamodb['NewImage'] = ddb_image(**(new_image or {}))
        return {
            'eventID': 'evt-1',
            'eventName': event_name,
            'eventSource': 'aws:dynamodb',
            'eventSourceARN': 'arn:aws:dynamodb:us-east-1:123456789012:table/Leads/stream/2025-10-19T00:00:00.000',
            'dynamodb': dynamodb,
        }
    return _build
