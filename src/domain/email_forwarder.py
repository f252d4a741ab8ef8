"""
Email forwarding pipeline - core business logic.

This module handles the end-to-end forwarding of one SES receipt event:
1. Validate the SES event and extract the message reference
2. Map original recipients to forwarding destinations
3. Fetch the raw message from S3
4. Rewrite headers so SES will accept the message
5. Send the message with SES SendRawEmail

If no recipient matches a forwarding rule the pipeline stops after step 2
without error. Any other failure stops the pipeline and is returned as a
ForwardingResult with success=False.
"""

import logging
from typing import Any, Dict, Optional

from .config import ForwarderConfig
from .errors import InvalidEventError
from .models import (
    ForwardingResult,
    InboundMessage,
    MailSender,
    MessageStore,
    PipelineContext,
)
from .pipeline import run_pipeline
from .recipients import map_recipients
from services import email as email_service

logger = logging.getLogger(__name__)

SES_EVENT_SOURCE = 'aws:ses'
SES_EVENT_VERSION = '1.0'


class EmailForwarder:
    """
    Forwards inbound SES messages to mapped destinations.

    Args:
        config: Forwarding configuration for this invocation
        message_store: Gateway that loads raw messages (S3 in production)
        mail_sender: Gateway that sends raw messages (SES in production)
    """

    def __init__(self, config: ForwarderConfig, message_store: MessageStore, mail_sender: MailSender):
        self.config = config
        self.message_store = message_store
        self.mail_sender = mail_sender
        self.steps = (
            self.validate_event,
            self.map_recipients,
            self.fetch_message,
            self.rewrite_headers,
            self.send_message,
        )

    def forward(self, event: Dict[str, Any]) -> ForwardingResult:
        """
        Run the forwarding pipeline for one SES event.

        Args:
            event: Lambda event from an SES receipt rule

        Returns:
            ForwardingResult with success=True (forwarded or skipped) or
            success=False with the first error (errors logged)
        """
        context = PipelineContext(event=event, config=self.config)

        try:
            context = run_pipeline(self.steps, context)
        except Exception as e:
            logger.error(f"Step returned error: {e}", exc_info=True)
            return ForwardingResult(
                success=False,
                message_id=_message_id_from_event(event),
                error_message=str(e)
            )

        result = ForwardingResult.from_context(context)
        logger.info(f"Process finished successfully: {result!r}")
        return result

    def validate_event(self, context: PipelineContext) -> PipelineContext:
        """
        Check the event is a single SES receipt record and extract the message.

        Raises:
            InvalidEventError: If the event shape is not as expected
        """
        event = context.event
        records = event.get('Records') if isinstance(event, dict) else None

        if (
            not isinstance(records, list)
            or len(records) != 1
            or not isinstance(records[0], dict)
            or records[0].get('eventSource') != SES_EVENT_SOURCE
            or records[0].get('eventVersion') != SES_EVENT_VERSION
        ):
            logger.error(f"validate_event() received invalid SES message: {event}")
            raise InvalidEventError("Received invalid SES message.")

        ses = records[0].get('ses')
        mail = ses.get('mail') if isinstance(ses, dict) else None
        receipt = ses.get('receipt') if isinstance(ses, dict) else None
        if not isinstance(mail, dict) or not isinstance(receipt, dict):
            logger.error(f"validate_event() SES record missing mail or receipt: {records[0]}")
            raise InvalidEventError("Received invalid SES message.")

        message_id = mail.get('messageId')
        recipients = receipt.get('recipients')

        if (
            not isinstance(message_id, str)
            or not message_id
            or not isinstance(recipients, list)
            or not all(isinstance(r, str) for r in recipients)
        ):
            logger.error(f"validate_event() SES record missing messageId or recipients: {records[0]}")
            raise InvalidEventError("Received invalid SES message.")

        # Informational only; a missing or malformed block does not reject the record
        common_headers = mail.get('commonHeaders')
        if not isinstance(common_headers, dict):
            common_headers = {}

        message = InboundMessage(
            message_id=message_id,
            recipients=list(recipients),
            source=mail.get('source', ''),
            subject=common_headers.get('subject', ''),
            timestamp=mail.get('timestamp', '')
        )
        logger.info(
            f"Parsed: message_id={message.message_id}, source={message.source}, "
            f"subject={message.subject}"
        )

        return context.evolve(message=message, original_recipients=list(message.recipients))

    def map_recipients(self, context: PipelineContext) -> PipelineContext:
        """Transform original recipients into forwarding destinations."""
        mapping = map_recipients(
            context.original_recipients,
            context.config.forward_mapping,
            context.config.allow_plus_sign
        )

        if mapping.is_empty:
            logger.info(
                f"Finishing process. No new recipients found for original destinations: "
                f"{', '.join(context.original_recipients)}"
            )
            return context.evolve(recipients=[], finished=True)

        return context.evolve(
            recipients=mapping.destinations,
            original_recipient=mapping.original_recipient
        )

    def fetch_message(self, context: PipelineContext) -> PipelineContext:
        """Load the raw message from the message store."""
        raw_message = self.message_store.fetch_message(
            context.config.message_bucket,
            context.config.message_key_prefix,
            context.message.message_id
        )
        return context.evolve(raw_message=raw_message)

    def rewrite_headers(self, context: PipelineContext) -> PipelineContext:
        """Rewrite the message headers for re-sending."""
        config = context.config
        rewritten = email_service.process_message(
            context.raw_message,
            from_email=config.from_email,
            original_recipient=context.original_recipient,
            subject_prefix=config.subject_prefix,
            to_email=config.to_email
        )
        return context.evolve(rewritten_message=rewritten)

    def send_message(self, context: PipelineContext) -> PipelineContext:
        """Send the rewritten message to the transformed recipients."""
        logger.info(
            f"Sending email via SES. Original recipients: {', '.join(context.original_recipients)}. "
            f"Transformed recipients: {', '.join(context.recipients)}."
        )
        delivery_id = self.mail_sender.send_message(
            list(context.recipients),
            context.original_recipient,
            context.rewritten_message
        )
        return context.evolve(delivery_id=delivery_id)


def _message_id_from_event(event: Any) -> Optional[str]:
    """Best-effort message id for failure results."""
    try:
        return event['Records'][0]['ses']['mail']['messageId']
    except (KeyError, IndexError, TypeError):
        return None
