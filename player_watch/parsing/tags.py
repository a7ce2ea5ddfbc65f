from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from player_watch.logging.init import component_logger
from player_watch.parsing.numbers import parse_int

"""Tag interpretation.

Players carry auxiliary metadata as prefixed tokens in their tag list, e.g.
``store:1042`` or ``company:acme``. Each token is classified into one of
three cases (store tag, company tag, anything else) and the store number and
company name are derived from the classified tokens.
"""

__all__ = [
    "TagKind",
    "TagMatch",
    "TagSettings",
    "classify_tag",
    "interpret_tags",
]


class TagKind(Enum):
    STORE = "store"
    COMPANY = "company"
    OTHER = "other"


@dataclass(frozen=True)
class TagMatch:
    kind: TagKind
    value: str  # token with the matched prefix removed (whole token for OTHER)


@dataclass(frozen=True)
class TagSettings:
    """Prefixes and lookups used to interpret tags.

    store_test_number marks demo/test players: a store tag carrying this
    number is never assigned.
    """
    store_number_prefix: str
    company_name_prefix: str
    companies: Mapping[str, str] = field(default_factory=dict)
    store_test_number: int = 0


def classify_tag(tag: str, settings: TagSettings) -> TagMatch:
    """Classify one token. The store prefix is checked first."""
    if tag.startswith(settings.store_number_prefix):
        return TagMatch(TagKind.STORE, tag[len(settings.store_number_prefix):])
    if tag.startswith(settings.company_name_prefix):
        return TagMatch(TagKind.COMPANY, tag[len(settings.company_name_prefix):])
    return TagMatch(TagKind.OTHER, tag)


def interpret_tags(
    tags: Iterable[str],
    settings: TagSettings,
    logger: logging.Logger | None = None,
    *,
    player_ref: str = "",
) -> tuple[int, str]:
    """Derive (store_number, company_name) from a tag list.

    Tokens are processed in order and a later match overwrites an earlier
    one. Malformed store tags and the test store number leave the current
    value untouched; unknown company keys are used verbatim.

    Args:
        tags: Tag tokens in their original order
        settings: Prefixes, company lookup and test store number
        logger: Diagnostics sink (defaults to ``player_watch.tags``)
        player_ref: Short player description included in diagnostics

    Returns:
        (store_number, company_name), defaulting to (0, "")
    """
    log = logger or component_logger("tags")
    store_number = 0
    company_name = ""

    for tag in tags:
        match = classify_tag(tag, settings)

        if match.kind is TagKind.STORE:
            if match.value == "":
                log.debug(f"tags: empty store number tag player={player_ref}")
                continue
            try:
                number = parse_int(match.value)
            except ValueError as e:
                log.error(f"tags: invalid store number tag={tag!r} player={player_ref} err={e}")
                continue
            if number == settings.store_test_number:
                continue
            store_number = number

        elif match.kind is TagKind.COMPANY:
            if match.value == "":
                log.warning(f"tags: empty company name tag player={player_ref}")
                continue
            mapped = settings.companies.get(match.value)
            if mapped is None:
                log.warning(f"tags: unknown company name company_name={match.value!r} player={player_ref}")
                company_name = match.value
            else:
                company_name = mapped

    return store_number, company_name
