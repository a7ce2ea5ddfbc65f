from __future__ import annotations

import logging
import re

from player_watch.logging.init import component_logger

"""MAC address normalization.

Any punctuation or case is accepted on input; output is always the
colon-delimited upper-case form (AA:BB:CC:DD:EE:FF) or "" when the input does
not contain exactly twelve hex digits.
"""

__all__ = [
    "format_mac",
]

_NON_HEX_RE = re.compile(r"[^0-9a-fA-F]")
MAC_HEX_DIGITS = 12


def format_mac(raw: str, logger: logging.Logger | None = None) -> str:
    """Return the canonical form of ``raw`` or "" if it is not a MAC address.

    >>> format_mac("aa-bb-cc-dd-ee-ff")
    'AA:BB:CC:DD:EE:FF'
    >>> format_mac("invalid")
    ''
    """
    if not raw:
        return ""

    digits = _NON_HEX_RE.sub("", raw)
    if len(digits) != MAC_HEX_DIGITS:
        (logger or component_logger("mac")).warning(f"mac: invalid address raw={raw!r} hex_digits={len(digits)}")
        return ""

    pairs = [digits[i:i + 2] for i in range(0, MAC_HEX_DIGITS, 2)]
    return ":".join(pairs).upper()
