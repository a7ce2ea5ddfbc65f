# Test data builders shared across unit, contract and integration tests
from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import Any

from player_watch.models.player import Player

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


def raw_record(**overrides: Any) -> dict[str, Any]:
    """One reporting API record; defaults describe an offline Acme player in store 1042."""
    record: dict[str, Any] = {
        "number": 1,
        "id": "101",
        "group_name": "Retail/North",
        "panel_name": "Entrance screen",
        "f_tag": "store:1042,company:acme",
        "schedule_name": "Default",
        "timezone_diff": "3",
        "last_online": "2024-05-20 08:30:00",
        "serial": "SN-101",
        "mac": "aa-bb-cc-dd-ee-01",
        "ip": "10.0.0.101",
        "type": "android",
        "model": "X1",
        "v": "2.4.1",
    }
    record.update(overrides)
    return record


def payload(*records: dict[str, Any]) -> bytes:
    return json.dumps(list(records)).encode("utf-8")


def make_player(**overrides: Any) -> Player:
    values: dict[str, Any] = {
        "number": 1,
        "id": 101,
        "group_name": "Retail/North",
        "player_name": "Entrance screen",
        "tags": ("store:1042", "company:acme"),
        "schedule_name": "Default",
        "timezone_diff": 3,
        "last_online": NOW - timedelta(days=5),
        "serial": "SN-101",
        "mac": "AA:BB:CC:DD:EE:01",
        "ip": "10.0.0.101",
        "type": "android",
        "model": "X1",
        "version": "2.4.1",
        "store_number": 1042,
        "company_name": "Acme Retail",
    }
    values.update(overrides)
    return Player(**values)
