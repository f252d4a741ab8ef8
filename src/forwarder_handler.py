"""
AWS Lambda handler for forwarding emails received by SES.

Thin orchestration layer that delegates to EmailForwarder.
Policy: no retries. Any failure is raised so Lambda reports a single error.
"""

import logging
import os
from typing import Any, Dict

from domain.config import ForwarderConfig
from domain.email_forwarder import EmailForwarder
from domain.errors import ConfigurationError, ForwarderError
from services.s3 import S3MessageStore
from services.ses import SesMailSender


def _resolve_log_level(name: str) -> int:
    """Map a LOG_LEVEL name to a logging level, falling back to INFO."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


# Configure logging
logger = logging.getLogger()
logger.setLevel(_resolve_log_level(os.environ.get('LOG_LEVEL', 'INFO')))

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Forward one inbound SES message.

    Args:
        event: Lambda event from an SES receipt rule
        context: Lambda context

    Returns:
        Dict summarizing the outcome (status is "forwarded" or "skipped")

    Raises:
        ForwarderError: If configuration is invalid or any step fails
    """
    logger.info("=" * 70)
    logger.info("SES Email Forwarder - Started")
    logger.info("=" * 70)

    try:
        config = ForwarderConfig.from_environ()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise ConfigurationError(f"Step returned error: {e}") from e

    forwarder = EmailForwarder(
        config=config,
        message_store=S3MessageStore(),
        mail_sender=SesMailSender()
    )

    result = forwarder.forward(event)

    if not result.success:
        logger.warning(f"⚠ Message {result.message_id} was NOT forwarded: {result.error_message}")
        raise ForwarderError(f"Step returned error: {result.error_message}")

    if result.forwarded:
        logger.info(
            f"✓ Forwarded message {result.message_id} to {len(result.destinations)} "
            f"destination(s) as {result.original_recipient}"
        )
    else:
        logger.info(f"✓ Message {result.message_id} matched no forwarding rule, nothing sent")

    return {
        'status': 'forwarded' if result.forwarded else 'skipped',
        'messageId': result.message_id,
        'destinations': result.destinations,
        'deliveryId': result.delivery_id,
    }
