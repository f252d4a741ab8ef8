"""
Exception types for the forwarding pipeline.

Every error is terminal for the invocation; none are retried internally.
"""


class ForwarderError(Exception):
    """Base class for all forwarding failures."""
    pass


class ConfigurationError(ForwarderError):
    """Raised when the environment configuration is invalid or missing."""
    pass


class InvalidEventError(ForwarderError):
    """Raised when the inbound event is not a single SES receipt record."""
    pass


class MessageCopyError(ForwarderError):
    """Raised when the stored message cannot be copied in place."""
    pass


class MessageFetchError(ForwarderError):
    """Raised when the stored message body cannot be loaded."""
    pass


class MessageSendError(ForwarderError):
    """Raised when SES rejects or fails the outbound send."""
    pass


class PipelineConfigurationError(ForwarderError):
    """Raised when a pipeline step is not callable."""
    pass
