from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

from player_watch.logging.init import component_logger
from player_watch.models.player import Player, RawPlayer
from player_watch.parsing.mac import format_mac
from player_watch.parsing.numbers import parse_int
from player_watch.parsing.tags import TagSettings, interpret_tags

"""Raw payload -> Player normalization.

A payload that is not a JSON array of objects fails the whole batch
(MalformedPayloadError). Inside a well-formed batch every record stands
alone: a record whose id, timezone, sequence number or last-online value
cannot be parsed is logged, reported in NormalizationResult.errors and
dropped, and the remaining records are still normalized.
"""

__all__ = [
    "LAST_ONLINE_FORMAT",
    "NormalizationError",
    "ParseIDError",
    "ParseTimezoneError",
    "ParseLastOnlineError",
    "ParseNumberError",
    "MalformedPayloadError",
    "RejectedPlayer",
    "NormalizationResult",
    "PlayerNormalizer",
]

LAST_ONLINE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LAST_ONLINE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}")


class NormalizationError(Exception):
    """Base class for per-record parse failures."""
    error_type = "NORMALIZATION_ERROR"


class ParseIDError(NormalizationError):
    """Raised when a non-empty id is not an integer."""
    error_type = "PARSE_ID"


class ParseTimezoneError(NormalizationError):
    """Raised when the timezone offset is not an integer."""
    error_type = "PARSE_TZ"


class ParseLastOnlineError(NormalizationError):
    """Raised when last_online does not match YYYY-MM-DD HH:MM:SS."""
    error_type = "PARSE_LAST_ONLINE"


class ParseNumberError(NormalizationError):
    """Raised when the sequence number is neither empty nor an integer."""
    error_type = "PARSE_NUMBER"


class MalformedPayloadError(Exception):
    """Raised when the payload is not a JSON array of objects."""


@dataclass(frozen=True)
class RejectedPlayer:
    index: int  # position in the payload array
    raw_id: str
    error: NormalizationError


@dataclass
class NormalizationResult:
    players: list[Player] = field(default_factory=list)
    errors: list[RejectedPlayer] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.players) + len(self.errors)


class PlayerNormalizer:
    """Converts raw API records into Player instances."""

    def __init__(self, settings: TagSettings, logger: logging.Logger | None = None) -> None:
        self.settings = settings
        self.logger = logger or component_logger("normalizer")

    def normalize_players(self, body: bytes | str) -> NormalizationResult:
        """Decode a payload and normalize every record in it.

        Raises:
            MalformedPayloadError: payload is not a JSON array of objects
        """
        start = time.perf_counter()
        raws = self.parse_raw(body)

        result = NormalizationResult()
        for index, raw in enumerate(raws):
            try:
                result.players.append(self.normalize(raw))
            except NormalizationError as e:
                self.logger.error(f"normalize: dropped player index={index} id={raw.id!r} err={e}")
                result.errors.append(RejectedPlayer(index=index, raw_id=raw.id, error=e))

        self.logger.debug(
            f"normalize: players={len(result.players)} rejected={len(result.errors)} "
            f"elapsed_sec={time.perf_counter() - start:.3f}"
        )
        return result

    def parse_raw(self, body: bytes | str) -> list[RawPlayer]:
        try:
            decoded = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self.logger.error(f"normalize: error decoding payload err={e}")
            raise MalformedPayloadError(f"invalid json payload: {e}") from e

        if not isinstance(decoded, list):
            raise MalformedPayloadError(f"payload must be a JSON array, got {type(decoded).__name__}")

        raws: list[RawPlayer] = []
        for index, item in enumerate(decoded):
            if not isinstance(item, dict):
                raise MalformedPayloadError(
                    f"payload element {index} must be an object, got {type(item).__name__}"
                )
            raws.append(RawPlayer.from_dict(item))
        return raws

    def normalize(self, raw: RawPlayer) -> Player:
        """Build a Player from one raw record.

        Raises:
            ParseIDError, ParseTimezoneError, ParseLastOnlineError, ParseNumberError
        """
        player_id = 0
        if raw.id != "":
            try:
                player_id = parse_int(raw.id)
            except ValueError as e:
                raise ParseIDError(f"error parsing id {raw.id!r}") from e

        try:
            tz = parse_int(raw.timezone_diff)
        except ValueError as e:
            raise ParseTimezoneError(f"error parsing time zone {raw.timezone_diff!r}") from e

        last_online = self._parse_last_online(raw.last_online)

        number = 0
        if raw.number != "":
            try:
                number = parse_int(raw.number)
            except ValueError as e:
                raise ParseNumberError(f"error parsing number {raw.number!r}") from e

        tags = tuple(raw.tags.split(",")) if raw.tags != "" else ()
        store_number, company_name = interpret_tags(
            tags, self.settings, self.logger, player_ref=f"{player_id}/{raw.player_name}"
        )

        return Player(
            number=number,
            id=player_id,
            group_name=raw.group_name,
            player_name=raw.player_name,
            tags=tags,
            schedule_name=raw.schedule_name,
            timezone_diff=tz,
            last_online=last_online,
            serial=raw.serial,
            mac=format_mac(raw.mac, self.logger),
            ip=raw.ip,
            type=raw.type,
            model=raw.model,
            version=raw.version,
            store_number=store_number,
            company_name=company_name,
        )

    @staticmethod
    def _parse_last_online(value: str) -> datetime:
        if not _LAST_ONLINE_RE.fullmatch(value):
            raise ParseLastOnlineError(f"error parsing last online {value!r}")
        try:
            parsed = datetime.strptime(value, LAST_ONLINE_FORMAT)
        except ValueError as e:
            raise ParseLastOnlineError(f"error parsing last online {value!r}") from e
        return parsed.replace(tzinfo=UTC)
