"""
Pytest configuration and fixtures for all tests.
"""

import json
import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
# (module-level boto3 clients need a region)
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('MAIL_S3_BUCKET', 'ses-inbound-test')
os.environ.setdefault('LOG_LEVEL', 'INFO')

from domain.config import ForwarderConfig


@pytest.fixture
def ses_event():
    """Load sample SES receipt event from test data."""
    with open(os.path.join(os.path.dirname(__file__), 'events', 'ses-event.json')) as f:
        return json.load(f)


@pytest.fixture
def forwarder_config():
    """Configuration matching the sample event."""
    return ForwarderConfig(
        message_bucket='ses-inbound-test',
        message_key_prefix='inbound/',
        forward_mapping={'sales': ['alice@corp.com', 'bob@corp.com']},
        from_email='relay@corp.com',
    )


@pytest.fixture
def sample_raw_email():
    """Raw message as stored by SES."""
    return b"From: cust@x.com\r\nTo: sales@example.com\r\nSubject: Hi\r\n\r\nBody text"
