"""Numeric encoding of client IP addresses.

The evaluator script matches addresses against ranges stored as sorted sets
scored by the address's integer value, so every fingerprint carries both the
textual address and its unsigned decimal form.
"""

from __future__ import annotations

import ipaddress

from ._logging import WafrisLogger


def ip_to_numeric_string(ip: str | None, logger: WafrisLogger) -> str:
    """Return the unsigned integer value of ``ip`` as a base-10 string.

    IPv4 is tried first, then IPv6, so dotted-quad strings always resolve as
    32-bit values. Unparseable or missing addresses are logged at error level
    and produce ``""``; this function never raises.

    Example::

        >>> ip_to_numeric_string("127.0.0.1", logger)
        '2130706433'
    """
    if ip is None:
        logger.error(
            "[Wafris] Error parsing IP address: no address available",
            extra={"event": "wafris_ip_parse_error", "ip": None},
        )
        return ""

    try:
        return str(int(ipaddress.IPv4Address(ip)))
    except ValueError:
        pass
    try:
        return str(int(ipaddress.IPv6Address(ip)))
    except ValueError as e:
        logger.error(
            "[Wafris] Error parsing IP address %s: %s",
            ip,
            str(e),
            extra={"event": "wafris_ip_parse_error", "ip": ip, "error": str(e)},
        )
    except Exception as e:
        logger.error(
            "[Wafris] Unexpected %s parsing IP address %s",
            type(e).__name__,
            ip,
            extra={"event": "wafris_ip_parse_error", "ip": ip, "error": str(e)},
        )
    return ""
