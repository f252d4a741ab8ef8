"""
Header rewriting utilities for forwarded messages.

This module rewrites the raw header block of an inbound message so that SES
accepts it for re-sending: the From address must be a verified identity, and
headers that identify or sign the original delivery are dropped. The body is
never parsed and is passed through byte for byte.
"""

import logging
import re
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Non-UTF-8 bytes round-trip unchanged through surrogateescape
_CHARSET = 'utf-8'
_ERRORS = 'surrogateescape'

# Header: run of non-blank lines. Body: first blank line to end of message.
_HEADER_BODY_RE = re.compile(r'\A((?:[^\r\n]+\r?\n)*)(\r?\n[\s\S]*)\Z')

# A header value plus any folded continuation lines
_FOLDED_VALUE = r'[^\r\n]*(?:\r?\n[ \t]+[^\r\n]*)*'

_REPLY_TO_RE = re.compile(r'^reply-to:[\t ]?', re.IGNORECASE | re.MULTILINE)
_FROM_WITH_EOL_RE = re.compile(
    r'^from:[\t ]?(' + _FOLDED_VALUE + r'\r?\n)', re.IGNORECASE | re.MULTILINE
)
_FROM_RE = re.compile(r'^from:[\t ]?(' + _FOLDED_VALUE + r')', re.IGNORECASE | re.MULTILINE)
_SUBJECT_RE = re.compile(r'^subject:[\t ]?([^\r\n]*)', re.IGNORECASE | re.MULTILINE)
_TO_RE = re.compile(r'^to:[\t ]?([^\r\n]*)', re.IGNORECASE | re.MULTILINE)
_ANGLE_ADDRESS_RE = re.compile(r'<(.*)>')

# Headers removed entirely (line plus newline)
_STRIPPED_HEADER_RES = [
    re.compile(r'^return-path:[\t ]?[^\r\n]*\r?\n', re.IGNORECASE | re.MULTILINE),
    re.compile(r'^sender:[\t ]?[^\r\n]*\r?\n', re.IGNORECASE | re.MULTILINE),
    re.compile(r'^message-id:[\t ]?[^\r\n]*\r?\n', re.IGNORECASE | re.MULTILINE),
]

# DKIM signatures are folded over several lines and invalid once From changes
_DKIM_SIGNATURE_RE = re.compile(
    r'^dkim-signature:[\t ]?[^\r\n]*\r?\n(?:[ \t]+[^\r\n]*\r?\n)*',
    re.IGNORECASE | re.MULTILINE
)


def split_message(raw_message: str) -> Tuple[str, str]:
    """
    Split a raw message into its header block and body.

    The header is every line up to the first blank line; the body starts at
    the blank line (separator included) so that header + body reproduces the
    input exactly.

    Args:
        raw_message: Full message text

    Returns:
        Tuple of (header, body). If there is no blank line the whole message
        is the header and the body is empty.

    Example:
        >>> split_message("Subject: Hi\\r\\n\\r\\nBody text")
        ('Subject: Hi\\r\\n', '\\r\\nBody text')
    """
    match = _HEADER_BODY_RE.match(raw_message)
    if not match:
        return raw_message, ''
    return match.group(1), match.group(2)


def extract_from(header: str) -> str:
    """
    Extract the first From value, folded lines and trailing newline included.

    Returns an empty string if no complete From header is present.
    """
    match = _FROM_WITH_EOL_RE.search(header)
    return match.group(1) if match else ''


def add_reply_to(header: str) -> str:
    """Append a Reply-To copied from From, unless one already exists."""
    if _REPLY_TO_RE.search(header):
        return header

    from_value = extract_from(header)
    if not from_value:
        logger.info("Reply-To address not added because From address was not properly extracted.")
        return header

    logger.info(f"Added Reply-To address of: {from_value.strip()}")
    return f"{header}Reply-To: {from_value}"


def rewrite_from(header: str, from_email: Optional[str], original_recipient: Optional[str]) -> str:
    """
    Replace every From header with a sender SES will accept.

    With a verified from_email the original display name is kept and the
    address is swapped. Otherwise the original value becomes the display name
    ("<" turned into "at ") and the original recipient is the address.
    """
    def _replace(match):
        original = match.group(1)
        if from_email:
            display = _ANGLE_ADDRESS_RE.sub('', original, count=1).strip()
            return f"From: {display} <{from_email}>"
        display = original.replace('<', 'at ', 1).replace('>', '', 1)
        return f"From: {display} <{original_recipient}>"

    return _FROM_RE.sub(_replace, header)


def prefix_subject(header: str, subject_prefix: str) -> str:
    """Prepend subject_prefix to every Subject header."""
    if not subject_prefix:
        return header
    return _SUBJECT_RE.sub(lambda m: f"Subject: {subject_prefix}{m.group(1)}", header)


def override_to(header: str, to_email: Optional[str]) -> str:
    """Replace every To header value with to_email."""
    if not to_email:
        return header
    return _TO_RE.sub(lambda m: f"To: {to_email}", header)


def strip_delivery_headers(header: str) -> str:
    """Remove Return-Path, Sender, Message-ID and DKIM-Signature headers."""
    for pattern in _STRIPPED_HEADER_RES:
        header = pattern.sub('', header)
    return _DKIM_SIGNATURE_RE.sub('', header)


def rewrite_headers(
    header: str,
    from_email: Optional[str] = None,
    original_recipient: Optional[str] = None,
    subject_prefix: str = '',
    to_email: Optional[str] = None
) -> str:
    """
    Apply all forwarding rewrites to a header block, in order.

    Args:
        header: Header block as returned by split_message()
        from_email: Verified sender address (optional)
        original_recipient: Address used as sender when from_email is unset
        subject_prefix: Prefix for Subject headers
        to_email: Replacement for To headers

    Returns:
        str: The rewritten header block
    """
    header = add_reply_to(header)
    header = rewrite_from(header, from_email, original_recipient)
    header = prefix_subject(header, subject_prefix)
    header = override_to(header, to_email)
    return strip_delivery_headers(header)


def process_message(
    raw_message: bytes,
    from_email: Optional[str] = None,
    original_recipient: Optional[str] = None,
    subject_prefix: str = '',
    to_email: Optional[str] = None
) -> bytes:
    """
    Rewrite the headers of a raw message and reattach the original body.

    Args:
        raw_message: Raw message bytes as stored by SES

    Returns:
        bytes: Rewritten message ready for SendRawEmail

    Example:
        >>> process_message(
        ...     b"From: cust@x.com\\r\\nSubject: Hi\\r\\n\\r\\nBody text",
        ...     from_email="relay@corp.com"
        ... )
        b'From: cust@x.com <relay@corp.com>\\r\\nSubject: Hi\\r\\nReply-To: cust@x.com\\r\\n\\r\\nBody text'
    """
    header, body = split_message(raw_message.decode(_CHARSET, _ERRORS))

    header = rewrite_headers(
        header,
        from_email=from_email,
        original_recipient=original_recipient,
        subject_prefix=subject_prefix,
        to_email=to_email
    )

    return (header + body).encode(_CHARSET, _ERRORS)
