"""
Data models for the email forwarding domain.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Protocol

from .config import ForwarderConfig


@dataclass(frozen=True)
class InboundMessage:
    """
    Message reference extracted from an SES receipt notification.

    Attributes:
        message_id: SES message id (also the S3 object name)
        recipients: Original envelope recipients from the receipt
        source: Envelope sender reported by SES (logging only)
        subject: Subject from the common headers (logging only)
        timestamp: ISO 8601 time SES received the message
    """
    message_id: str
    recipients: List[str]
    source: str = ''
    subject: str = ''
    timestamp: str = ''


@dataclass(frozen=True)
class RecipientMapping:
    """
    Result of mapping original recipients through the forwarding table.

    Attributes:
        destinations: Flattened destination list, in rule order (may repeat)
        original_recipient: Last original address whose rule fired, used as
            the outbound envelope sender
    """
    destinations: List[str] = field(default_factory=list)
    original_recipient: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """Check if no forwarding rule matched."""
        return not self.destinations


@dataclass(frozen=True)
class PipelineContext:
    """
    Per-invocation state threaded through the forwarding steps.

    Each step returns a new context via evolve(); nothing outside the
    forwarder keeps a reference once the invocation ends.
    """
    event: Dict[str, Any]
    config: ForwarderConfig
    message: Optional[InboundMessage] = None
    original_recipients: List[str] = field(default_factory=list)
    recipients: List[str] = field(default_factory=list)
    original_recipient: Optional[str] = None
    raw_message: Optional[bytes] = None
    rewritten_message: Optional[bytes] = None
    delivery_id: Optional[str] = None
    finished: bool = False

    def evolve(self, **changes: Any) -> 'PipelineContext':
        """Return a copy of this context with the given fields replaced."""
        return replace(self, **changes)


@dataclass
class ForwardingResult:
    """
    Result of one forwarding invocation.

    This explicit result type makes success/failure handling clear
    and keeps the "no recipients" exit apart from real failures.

    Attributes:
        success: Whether the pipeline completed without error
        message_id: SES message id (if the event was valid)
        forwarded: Whether a message was actually sent
        destinations: Transformed recipients
        original_recipient: Envelope sender used for the send
        delivery_id: SES MessageId of the forwarded message
        error_message: Description of the first failure
    """
    success: bool
    message_id: Optional[str] = None
    forwarded: bool = False
    destinations: List[str] = field(default_factory=list)
    original_recipient: Optional[str] = None
    delivery_id: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_context(cls, context: PipelineContext) -> 'ForwardingResult':
        """Build a success result from the final pipeline context."""
        return cls(
            success=True,
            message_id=context.message.message_id if context.message else None,
            forwarded=not context.finished,
            destinations=list(context.recipients),
            original_recipient=context.original_recipient,
            delivery_id=context.delivery_id,
        )

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return (
                f"ForwardingResult(success=True, message_id={self.message_id}, "
                f"forwarded={self.forwarded})"
            )
        else:
            return f"ForwardingResult(success=False, message_id={self.message_id}, error={self.error_message})"


class MessageStore(Protocol):
    """Storage gateway that returns the raw bytes of an inbound message."""

    def fetch_message(self, bucket: str, key_prefix: str, message_id: str) -> bytes:
        ...


class MailSender(Protocol):
    """Outbound gateway that sends a raw MIME message."""

    def send_message(self, destinations: List[str], source_address: str, raw_message: bytes) -> str:
        ...
