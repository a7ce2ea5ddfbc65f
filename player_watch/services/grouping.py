from __future__ import annotations

from collections.abc import Iterable

from player_watch.models.player import Player

"""Partition players by store number (0 = no store assigned)."""


def group_by_store(players: Iterable[Player]) -> dict[int, list[Player]]:
    groups: dict[int, list[Player]] = {}
    for player in players:
        groups.setdefault(player.store_number, []).append(player)
    return groups
