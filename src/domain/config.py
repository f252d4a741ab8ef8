"""
Forwarder configuration.

The configuration is read from environment variables once per invocation and
passed explicitly into the forwarder. Expected variables:

- MAIL_SENDER: verified SES address used as the From address (optional)
- MAIL_SUBJECT_PREFIX: text prepended to every Subject header (optional)
- MAIL_TO_OVERRIDE: fixed value for every To header (optional)
- MAIL_S3_BUCKET: bucket where SES stores inbound messages (required)
- MAIL_S3_PREFIX: key prefix for stored messages, include the trailing slash
- MAIL_ALLOW_PLUS_SIGN: strip "+suffix" from mailboxes before lookup (default true)
- MAIL_FORWARD_MAPPING: JSON object mapping addresses to destination lists
- MAIL_RECIPIENTS: comma-separated catch-all destinations for the "@" rule

Mapping keys can be a full address ("info@example.com"), a whole domain
("@example.com"), a mailbox on any domain ("info"), or "@" for everything
that matches no other rule.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

WILDCARD_KEY = '@'

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off')


@dataclass(frozen=True)
class ForwarderConfig:
    """
    Immutable forwarding configuration for one invocation.

    Attributes:
        message_bucket: S3 bucket where SES stores raw messages
        message_key_prefix: S3 key prefix prepended to the SES message id
        forward_mapping: Lowercase mapping key -> list of destination addresses
        from_email: Verified sender used in the rewritten From header
        subject_prefix: Prefix added to the Subject header
        to_email: Replacement value for the To header
        allow_plus_sign: Treat "name+tag@domain" as "name@domain" for lookup
    """
    message_bucket: str
    message_key_prefix: str = ''
    forward_mapping: Dict[str, List[str]] = field(default_factory=dict)
    from_email: Optional[str] = None
    subject_prefix: str = ''
    to_email: Optional[str] = None
    allow_plus_sign: bool = True

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> 'ForwarderConfig':
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            ForwarderConfig: The validated configuration

        Raises:
            ConfigurationError: If a required variable is missing or malformed
        """
        if environ is None:
            environ = os.environ

        bucket = environ.get('MAIL_S3_BUCKET', '').strip()
        if not bucket:
            raise ConfigurationError(
                "MAIL_S3_BUCKET environment variable is required but not set."
            )

        forward_mapping = _parse_forward_mapping(environ.get('MAIL_FORWARD_MAPPING', ''))

        catch_all = [
            address.strip()
            for address in environ.get('MAIL_RECIPIENTS', '').split(',')
            if address.strip()
        ]
        if catch_all and WILDCARD_KEY not in forward_mapping:
            forward_mapping[WILDCARD_KEY] = catch_all

        if not forward_mapping:
            logger.warning("No forwarding rules configured; every message will be dropped")

        config = cls(
            message_bucket=bucket,
            message_key_prefix=environ.get('MAIL_S3_PREFIX', ''),
            forward_mapping=forward_mapping,
            from_email=environ.get('MAIL_SENDER') or None,
            subject_prefix=environ.get('MAIL_SUBJECT_PREFIX', ''),
            to_email=environ.get('MAIL_TO_OVERRIDE') or None,
            allow_plus_sign=_parse_bool('MAIL_ALLOW_PLUS_SIGN', environ.get('MAIL_ALLOW_PLUS_SIGN'), True),
        )

        logger.info(
            f"Configuration loaded: bucket={config.message_bucket}, "
            f"prefix={config.message_key_prefix!r}, rules={len(config.forward_mapping)}, "
            f"allow_plus_sign={config.allow_plus_sign}"
        )
        return config


def _parse_forward_mapping(raw: str) -> Dict[str, List[str]]:
    """Parse the JSON forwarding table, lowercasing keys."""
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"MAIL_FORWARD_MAPPING is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("MAIL_FORWARD_MAPPING must be a JSON object")

    mapping: Dict[str, List[str]] = {}
    for key, value in data.items():
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(
                f"MAIL_FORWARD_MAPPING entry {key!r} must be a string or a list of strings"
            )
        mapping[key.lower()] = value

    return mapping


def _parse_bool(name: str, value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be true or false, got: {value!r}")
