"""
Tests for SES mail sender.
"""

import pytest
from unittest.mock import Mock, patch
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from services import ses
from domain.errors import MessageSendError


class TestSendMessage:
    """Test sending raw messages with SES."""

    @patch('services.ses.ses_client')
    def test_send_message_success(self, mock_ses_client):
        """Test a single send_raw_email call with the given envelope."""
        mock_ses_client.send_raw_email.return_value = {'MessageId': 'ses-message-id'}

        result = ses.SesMailSender().send_message(
            ['alice@corp.com', 'bob@corp.com'],
            'sales@example.com',
            b"From: x\r\n\r\nBody"
        )

        assert result == 'ses-message-id'
        mock_ses_client.send_raw_email.assert_called_once_with(
            Destinations=['alice@corp.com', 'bob@corp.com'],
            Source='sales@example.com',
            RawMessage={'Data': b"From: x\r\n\r\nBody"}
        )

    def test_send_message_client_error(self):
        """Test SES rejection raises MessageSendError."""
        client = Mock()
        client.send_raw_email.side_effect = ClientError(
            {'Error': {'Code': 'MessageRejected', 'Message': 'Email address is not verified.'}},
            'SendRawEmail'
        )

        with pytest.raises(MessageSendError, match="Email sending failed") as exc_info:
            ses.SesMailSender(client=client).send_message(['a@b.com'], 'c@d.com', b"raw")

        assert isinstance(exc_info.value.__cause__, ClientError)
        client.send_raw_email.assert_called_once()

    def test_send_message_generic_error(self):
        """Test unexpected errors are wrapped and not retried."""
        client = Mock()
        client.send_raw_email.side_effect = RuntimeError("connection reset")

        with pytest.raises(MessageSendError):
            ses.SesMailSender(client=client).send_message(['a@b.com'], 'c@d.com', b"raw")

        assert client.send_raw_email.call_count == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
