from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from datetime import UTC, datetime

from player_watch.logging.init import component_logger
from player_watch.models.config_models import FilterCriteria
from player_watch.models.player import Player

"""Eligibility filter: which players are reported as offline.

A player is ignored when any rule below holds; the first matching rule only
decides which reason is logged.

1. ignored_tag         - a tag is in ignored_tags
2. ignored_group       - the root group is in ignored_groups
3. company_not_allowed - company_name is not in allowed_companies
4. recently_online     - offline for no longer than max_offline

Rule 3 with an empty allowed_companies ignores every player. That is the
configured behaviour, so it is only flagged with a warning.
"""

__all__ = [
    "REASON_IGNORED_TAG",
    "REASON_IGNORED_GROUP",
    "REASON_COMPANY_NOT_ALLOWED",
    "REASON_RECENTLY_ONLINE",
    "EligibilityFilter",
]

REASON_IGNORED_TAG = "ignored_tag"
REASON_IGNORED_GROUP = "ignored_group"
REASON_COMPANY_NOT_ALLOWED = "company_not_allowed"
REASON_RECENTLY_ONLINE = "recently_online"


class EligibilityFilter:
    """Stateless filter over a FilterCriteria rule set."""

    def __init__(self, criteria: FilterCriteria, logger: logging.Logger | None = None) -> None:
        self.criteria = criteria
        self.logger = logger or component_logger("filter")

    def filter(self, players: Iterable[Player], now: datetime | None = None) -> list[Player]:
        """Return the players that are not ignored, in input order.

        Args:
            players: Normalized players
            now: Evaluation time (defaults to the current UTC time)
        """
        start = time.perf_counter()
        if now is None:
            now = datetime.now(UTC)

        if not self.criteria.allowed_companies:
            self.logger.warning("filter: allowed_companies is empty - every player will be ignored")

        kept: list[Player] = []
        total = 0
        for player in players:
            total += 1
            reason = self.ignore_reason(player, now)
            if reason is not None:
                self.logger.debug(f"filter: ignored player id={player.id} store={player.store_number} reason={reason}")
                continue
            kept.append(player)

        self.logger.debug(
            f"filter: filtered={len(kept)} total={total} elapsed_sec={time.perf_counter() - start:.3f}"
        )
        return kept

    def ignore_reason(self, player: Player, now: datetime) -> str | None:
        """Name of the first rule that ignores ``player``, or None if it is eligible."""
        c = self.criteria

        if not c.ignored_tags.isdisjoint(player.tags):
            return REASON_IGNORED_TAG

        if player.root_group in c.ignored_groups:
            return REASON_IGNORED_GROUP

        if player.company_name not in c.allowed_companies:
            return REASON_COMPANY_NOT_ALLOWED

        if now - player.last_online <= c.max_offline:
            return REASON_RECENTLY_ONLINE

        return None

    def is_eligible(self, player: Player, now: datetime | None = None) -> bool:
        return self.ignore_reason(player, now or datetime.now(UTC)) is None
