"""
SES operations for sending forwarded messages.
"""

import logging
from typing import Any, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from domain.errors import MessageSendError

logger = logging.getLogger(__name__)

# No client-side retries; a failed send fails the invocation
ses_config = Config(
    retries={
        'max_attempts': 1,
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

ses_client = boto3.client('ses', config=ses_config)
logger.info("SES client initialized with timeouts: connect=10s, read=30s, max_attempts=1")


class SesMailSender:
    """
    Mail sender using SES SendRawEmail.

    Args:
        client: boto3 SES client (defaults to the module-level client)
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def client(self):
        return self._client if self._client is not None else ses_client

    def send_message(self, destinations: List[str], source_address: str, raw_message: bytes) -> str:
        """
        Send a raw MIME message.

        Args:
            destinations: Envelope recipients
            source_address: Envelope sender (must be a verified identity)
            raw_message: Complete message including headers

        Returns:
            str: SES MessageId of the sent message

        Raises:
            MessageSendError: If SES rejects the message or the call fails
        """
        try:
            response = self.client.send_raw_email(
                Destinations=list(destinations),
                Source=source_address,
                RawMessage={'Data': raw_message}
            )
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))
            logger.error(
                f"send_raw_email() returned error: "
                f"error_code={error_code}, error_message={error_message}", exc_info=True
            )
            raise MessageSendError("Email sending failed.") from e
        except Exception as e:
            logger.error(f"send_raw_email() returned error: {e}", exc_info=True)
            raise MessageSendError("Email sending failed.") from e

        delivery_id = response.get('MessageId', '')
        logger.info(f"send_raw_email() successful: MessageId={delivery_id}")
        return delivery_id
