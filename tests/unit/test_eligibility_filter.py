from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from helpers import NOW, make_player
from player_watch.models.config_models import FilterCriteria
from player_watch.services.eligibility import (
    REASON_COMPANY_NOT_ALLOWED,
    REASON_IGNORED_GROUP,
    REASON_IGNORED_TAG,
    REASON_RECENTLY_ONLINE,
    EligibilityFilter,
)

CRITERIA = FilterCriteria(
    ignored_groups=frozenset({"Warehouse"}),
    ignored_tags=frozenset({"decommissioned"}),
    allowed_companies=frozenset({"Acme Retail", "Beta Stores"}),
    max_offline=timedelta(hours=48),
)


@pytest.fixture()
def flt() -> EligibilityFilter:
    return EligibilityFilter(CRITERIA)


def test_offline_allowed_player_is_kept(flt: EligibilityFilter):
    player = make_player()
    assert flt.ignore_reason(player, NOW) is None
    assert flt.filter([player], now=NOW) == [player]


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"tags": ("store:1042", "decommissioned")}, REASON_IGNORED_TAG),
        ({"group_name": "Warehouse/Back"}, REASON_IGNORED_GROUP),
        ({"group_name": "Warehouse"}, REASON_IGNORED_GROUP),
        ({"company_name": "Gamma"}, REASON_COMPANY_NOT_ALLOWED),
        ({"company_name": ""}, REASON_COMPANY_NOT_ALLOWED),
        ({"last_online": NOW - timedelta(hours=1)}, REASON_RECENTLY_ONLINE),
    ],
)
def test_each_rule_ignores_player(flt: EligibilityFilter, overrides, reason: str):
    player = make_player(**overrides)
    assert flt.ignore_reason(player, NOW) == reason
    assert flt.filter([player], now=NOW) == []


def test_only_root_group_is_matched(flt: EligibilityFilter):
    # "Warehouse" further down the hierarchy does not count
    player = make_player(group_name="Retail/Warehouse")
    assert flt.is_eligible(player, NOW)


def test_first_matching_rule_is_reported(flt: EligibilityFilter):
    player = make_player(
        tags=("decommissioned",),
        group_name="Warehouse",
        company_name="Gamma",
        last_online=NOW,
    )
    assert flt.ignore_reason(player, NOW) == REASON_IGNORED_TAG


def test_offline_threshold_is_inclusive(flt: EligibilityFilter):
    exactly = make_player(last_online=NOW - timedelta(hours=48))
    just_over = make_player(last_online=NOW - timedelta(hours=48, seconds=1))

    assert flt.ignore_reason(exactly, NOW) == REASON_RECENTLY_ONLINE
    assert flt.ignore_reason(just_over, NOW) is None


def test_filter_preserves_order_and_is_idempotent(flt: EligibilityFilter):
    players = [
        make_player(id=1),
        make_player(id=2, company_name="Gamma"),
        make_player(id=3, company_name="Beta Stores"),
        make_player(id=4, last_online=NOW),
        make_player(id=5),
    ]
    once = flt.filter(players, now=NOW)
    assert [p.id for p in once] == [1, 3, 5]
    assert flt.filter(once, now=NOW) == once


def test_empty_allowed_companies_ignores_everything(caplog):
    caplog.set_level(logging.DEBUG)
    flt = EligibilityFilter(FilterCriteria(max_offline=timedelta(hours=48)))

    assert flt.filter([make_player(), make_player(id=2)], now=NOW) == []
    assert any(r.levelno == logging.WARNING and "allowed_companies is empty" in r.getMessage() for r in caplog.records)


def test_empty_input(flt: EligibilityFilter):
    assert flt.filter([], now=NOW) == []
