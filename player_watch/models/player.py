from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

"""Player models for the offline player watcher.

RawPlayer mirrors one record of the reporting API payload: every field is
kept as text exactly as delivered. Player is the validated representation
produced by the normalizer and consumed by filtering, grouping and mailing.
"""

__all__ = [
    "RawPlayer",
    "Player",
]


# JSON key -> RawPlayer field
RAW_FIELD_MAP: dict[str, str] = {
    "number": "number",
    "id": "id",
    "group_name": "group_name",
    "panel_name": "player_name",
    "f_tag": "tags",
    "schedule_name": "schedule_name",
    "timezone_diff": "timezone_diff",
    "last_online": "last_online",
    "serial": "serial",
    "mac": "mac",
    "ip": "ip",
    "type": "type",
    "model": "model",
    "v": "version",
}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class RawPlayer:
    """One player as received from the reporting API (all fields text)."""
    number: str = ""
    id: str = ""
    group_name: str = ""
    player_name: str = ""
    tags: str = ""  # comma-joined
    schedule_name: str = ""
    timezone_diff: str = ""
    last_online: str = ""  # YYYY-MM-DD HH:MM:SS
    serial: str = ""
    mac: str = ""
    ip: str = ""
    type: str = ""
    model: str = ""
    version: str = ""

    @staticmethod
    def from_dict(obj: dict[str, Any]) -> RawPlayer:
        """Build a RawPlayer from a decoded JSON object.

        Missing keys and nulls become empty strings; other scalars are
        converted with str(). Unknown keys are ignored.
        """
        values = {field: _as_text(obj.get(key)) for key, field in RAW_FIELD_MAP.items()}
        return RawPlayer(**values)


@dataclass(frozen=True)
class Player:
    """Validated player record.

    store_number and company_name are derived from the tag list while the
    record is normalized; 0 and "" mean "unassigned".
    """
    number: int
    id: int
    group_name: str
    player_name: str
    tags: tuple[str, ...]
    schedule_name: str
    timezone_diff: int
    last_online: datetime  # UTC
    serial: str
    mac: str
    ip: str
    type: str
    model: str
    version: str
    store_number: int = 0
    company_name: str = ""

    @property
    def root_group(self) -> str:
        """First segment of a slash-delimited group name."""
        return self.group_name.split("/", 1)[0]
