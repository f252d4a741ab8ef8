"""
S3 operations for loading inbound messages stored by SES.

SES writes each received message to S3 under its message id. Before reading
it the object is copied onto itself, which makes the function's account the
owner of the object so that get_object is permitted.
"""

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from domain.errors import MessageCopyError, MessageFetchError

logger = logging.getLogger(__name__)

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,  # 10 seconds to establish connection
    read_timeout=60      # 60 seconds max for reading response
)

# Initialize S3 client at module level (thread-safe, reused across invocations)
s3_client = boto3.client('s3', config=s3_config)
logger.info("S3 client initialized with timeouts: connect=10s, read=60s, max_attempts=1")


class S3MessageStore:
    """
    Message store backed by the SES receipt bucket.

    Args:
        client: boto3 S3 client (defaults to the module-level client)
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def client(self):
        # Resolved lazily so tests can patch services.s3.s3_client
        return self._client if self._client is not None else s3_client

    def fetch_message(self, bucket: str, key_prefix: str, message_id: str) -> bytes:
        """
        Make the stored message readable and return its raw bytes.

        Args:
            bucket: S3 bucket name
            key_prefix: Key prefix SES writes under (with trailing slash)
            message_id: SES message id

        Returns:
            bytes: The raw message

        Raises:
            MessageCopyError: If the in-place copy fails
            MessageFetchError: If the object cannot be read

        Example:
            >>> store = S3MessageStore()
            >>> raw = store.fetch_message("my-ses-bucket", "inbound/", "abc123")
        """
        key = f"{key_prefix}{message_id}"
        logger.info(f"Fetching email at s3://{bucket}/{key}")

        self.make_readable_copy(bucket, key)
        raw_message = self.load_message(bucket, key)

        logger.info(f"Fetched {len(raw_message):,} bytes from S3")
        return raw_message

    def make_readable_copy(self, bucket: str, key: str) -> None:
        """Copy the object onto itself with a private ACL."""
        try:
            self.client.copy_object(
                Bucket=bucket,
                CopySource={'Bucket': bucket, 'Key': key},
                Key=key,
                ACL='private',
                ContentType='text/plain',
                StorageClass='STANDARD',
                MetadataDirective='REPLACE'
            )
        except Exception as e:
            logger.error(f"copy_object() returned error for s3://{bucket}/{key}: {e}", exc_info=True)
            raise MessageCopyError("Could not make readable copy of email.") from e

    def load_message(self, bucket: str, key: str) -> bytes:
        """Read the raw object body."""
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response['Body'].read()
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code == 'NoSuchKey':
                logger.error(f"S3 object not found: s3://{bucket}/{key}")
            else:
                logger.error(
                    f"get_object() returned error for s3://{bucket}/{key}: "
                    f"error_code={error_code}", exc_info=True
                )
            raise MessageFetchError("Failed to load message body from S3.") from e
        except Exception as e:
            logger.error(f"get_object() returned error for s3://{bucket}/{key}: {e}", exc_info=True)
            raise MessageFetchError("Failed to load message body from S3.") from e
