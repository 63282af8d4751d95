"""
Range expansion for discovery scans.

Turns the IP range supplied with a scan request into the ordered list of
IPv4 addresses the orchestrator will probe. Ranges of /24 and smaller are
enumerated within the last octet; anything larger is capped so a single scan
stays bounded in time.
"""

import re
from typing import List

from .data_models import RangeExpansion
from ..utils.error_handler import InvalidRangeError


CIDR_PATTERN = re.compile(r"^([0-9]{1,3}\.){3}[0-9]{1,3}(/([0-9]|[1-2][0-9]|3[0-2]))?$")

DEFAULT_LARGE_SUBNET_LIMIT = 50

# Highest host value used when enumerating within the last octet.
MAX_LAST_OCTET = 254


def validate_ip_range(ip_range: str) -> str:
    """
    Check that a range is a dotted-quad address with an optional /0-/32 prefix.

    Args:
        ip_range: Range to validate

    Returns:
        The range with surrounding whitespace removed

    Raises:
        InvalidRangeError: If the range is malformed or an octet exceeds 255
    """
    if not isinstance(ip_range, str):
        raise InvalidRangeError(ip_range)

    candidate = ip_range.strip()
    if not CIDR_PATTERN.match(candidate):
        raise InvalidRangeError(ip_range)

    base_ip = candidate.split("/", 1)[0]
    if any(int(octet) > 255 for octet in base_ip.split(".")):
        raise InvalidRangeError(ip_range)

    return candidate


def expand_ip_range(
    ip_range: str,
    large_subnet_limit: int = DEFAULT_LARGE_SUBNET_LIMIT,
    logger=None,
) -> RangeExpansion:
    """
    Expand an IP range into candidate addresses.

    - no prefix or /32: the address itself
    - /31: the base address and the next one
    - /24: x.y.z.1 through x.y.z.254
    - /25 to /30: usable hosts of the block containing the base address,
      starting no lower than the base address
    - shorter than /24: x.y.z.1 through x.y.z.``large_subnet_limit``, keeping
      the first three octets of the base address

    Args:
        ip_range: CIDR block or single address
        large_subnet_limit: Cap applied to prefixes shorter than /24
        logger: Optional logger used to report truncation

    Returns:
        RangeExpansion with ordered, de-duplicated addresses

    Raises:
        InvalidRangeError: If the range is malformed
    """
    ip_range = validate_ip_range(ip_range)

    if "/" not in ip_range:
        return RangeExpansion(ip_range=ip_range, addresses=[ip_range], prefix=32)

    base_ip, prefix_text = ip_range.split("/", 1)
    prefix = int(prefix_text)
    octets = [int(part) for part in base_ip.split(".")]
    network_prefix = ".".join(str(part) for part in octets[:3]) + "."
    last_octet = octets[3]

    if prefix == 32:
        addresses = [base_ip]
    elif prefix == 31:
        addresses = [f"{network_prefix}{value}" for value in (last_octet, last_octet + 1) if value <= 255]
    elif prefix >= 24:
        host_bits = 32 - prefix
        if host_bits == 8:
            first, last = 1, MAX_LAST_OCTET
        else:
            block_size = 2 ** host_bits
            network = last_octet - (last_octet % block_size)
            # An unaligned base starts the scan at the base itself
            first = max(last_octet, network + 1)
            last = min(network + block_size - 2, MAX_LAST_OCTET)
        addresses = [f"{network_prefix}{value}" for value in range(first, last + 1)]
    else:
        last = min(large_subnet_limit, MAX_LAST_OCTET)
        addresses = [f"{network_prefix}{value}" for value in range(1, last + 1)]
        if logger:
            logger.warning(
                f"Large subnet detected (/{prefix}). Limiting scan to first {len(addresses)} IPs."
            )
        return RangeExpansion(ip_range=ip_range, addresses=addresses, prefix=prefix, truncated=True)

    return RangeExpansion(ip_range=ip_range, addresses=_dedupe(addresses), prefix=prefix)


def expand(ip_range: str, large_subnet_limit: int = DEFAULT_LARGE_SUBNET_LIMIT) -> List[str]:
    """Shortcut returning only the candidate address list."""
    return expand_ip_range(ip_range, large_subnet_limit).addresses


def _dedupe(addresses: List[str]) -> List[str]:
    seen = set()
    ordered = []
    for address in addresses:
        if address not in seen:
            seen.add(address)
            ordered.append(address)
    return ordered

