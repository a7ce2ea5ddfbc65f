from __future__ import annotations

import re

"""Strict integer parsing shared by the normalizer and the tag interpreter.

Only an optional sign followed by ASCII digits is accepted; int() alone would
also let through surrounding whitespace and digit-group underscores.
"""

_INT_RE = re.compile(r"[+-]?[0-9]+")


def parse_int(text: str) -> int:
    """Parse ``text`` as a base-10 integer.

    Raises:
        ValueError: if text is not an optionally signed run of digits.
    """
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    return int(text)
