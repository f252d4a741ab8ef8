"""
Recipient mapping for forwarded messages.

Maps each original recipient through the static forwarding table. Lookup
order for an address is:

1. The full lowercase address ("info@example.com")
2. The domain ("@example.com")
3. The mailbox on any domain ("info")
4. The catch-all rule ("@")

The first rule that exists wins. Destinations from several original
recipients are concatenated in order without deduplication.
"""

import logging
import re
from typing import Iterable, List, Mapping, Optional

from .config import WILDCARD_KEY
from .models import RecipientMapping

logger = logging.getLogger(__name__)

# "name+tag@domain" -> "name@domain"; only the first "+" run before an "@"
_PLUS_SUFFIX_RE = re.compile(r'\+.*?@')


def normalize_address(address: str, allow_plus_sign: bool = True) -> str:
    """
    Produce the lookup key for an address.

    Args:
        address: Original recipient address (any case)
        allow_plus_sign: Strip a "+suffix" from the mailbox part

    Returns:
        str: Lowercase address, without the plus suffix when enabled

    Example:
        >>> normalize_address("Sales+Leads@Example.com")
        'sales@example.com'
    """
    key = address.lower()
    if allow_plus_sign:
        key = _PLUS_SUFFIX_RE.sub('@', key, count=1)
    return key


def candidate_keys(key: str) -> List[str]:
    """
    List the mapping keys to try for a normalized address, in priority order.

    The address is split on its last "@". An address without "@" is treated
    as a bare mailbox and has no domain key. A tier that repeats an earlier
    key is left out.
    """
    position = key.rfind('@')
    if position == -1:
        tiers = [key, WILDCARD_KEY]
    else:
        tiers = [key, key[position:], key[:position], WILDCARD_KEY]

    candidates = []
    for tier in tiers:
        if tier and tier not in candidates:
            candidates.append(tier)
    return candidates


def lookup_destinations(
    address: str,
    forward_mapping: Mapping[str, List[str]],
    allow_plus_sign: bool = True
) -> Optional[List[str]]:
    """
    Find the destinations for a single address.

    Returns:
        The destination list of the first matching rule, or None if no rule
        matches (an empty list means a rule matched but forwards nowhere)
    """
    key = normalize_address(address, allow_plus_sign)
    for candidate in candidate_keys(key):
        if candidate in forward_mapping:
            return list(forward_mapping[candidate])
    return None


def map_recipients(
    addresses: Iterable[str],
    forward_mapping: Mapping[str, List[str]],
    allow_plus_sign: bool = True
) -> RecipientMapping:
    """
    Map original recipients to forwarding destinations.

    Args:
        addresses: Original recipient addresses from the SES receipt
        forward_mapping: Lowercase key -> destination addresses
        allow_plus_sign: Ignore "+suffix" in mailboxes during lookup

    Returns:
        RecipientMapping: Flattened destinations and the last original
        recipient whose rule fired (None if nothing matched)

    Example:
        >>> result = map_recipients(
        ...     ["sales@example.com"],
        ...     {"sales": ["alice@corp.com", "bob@corp.com"]}
        ... )
        >>> result.destinations
        ['alice@corp.com', 'bob@corp.com']
        >>> result.original_recipient
        'sales@example.com'
    """
    destinations: List[str] = []
    original_recipient = None

    for address in addresses:
        matched = lookup_destinations(address, forward_mapping, allow_plus_sign)
        if matched is None:
            logger.debug(f"No forwarding rule for {address}")
            continue
        destinations.extend(matched)
        original_recipient = address

    return RecipientMapping(destinations=destinations, original_recipient=original_recipient)
