from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Dispatch and run result models.

DispatchOutcome records what happened to one store notification;
DispatchReport aggregates them for a run and RunResult carries everything the
SUMMARY line needs.
"""


class DispatchStatus(Enum):
    """Outcome of one store notification attempt.

    - SENT: notifier returned normally
    - FAILED: notifier raised
    - SKIPPED: attempt never started because the run deadline expired
    """
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchOutcome:
    store_number: int
    player_count: int
    status: DispatchStatus
    error: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is DispatchStatus.SENT


@dataclass(frozen=True)
class DispatchReport:
    """All outcomes of one dispatch call (order unspecified)."""
    outcomes: list[DispatchOutcome] = field(default_factory=list)

    def _count(self, status: DispatchStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def sent(self) -> int:
        return self._count(DispatchStatus.SENT)

    @property
    def failed(self) -> int:
        return self._count(DispatchStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(DispatchStatus.SKIPPED)

    def by_store(self) -> dict[int, DispatchOutcome]:
        return {o.store_number: o for o in self.outcomes}


@dataclass(frozen=True)
class RunResult:
    """Aggregated result of one pipeline run."""
    total_players: int  # records in the payload
    rejected_players: int  # dropped by normalization
    eligible_players: int  # survived the filter
    stores: int  # groups dispatched
    report: DispatchReport
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float

    @property
    def has_failures(self) -> bool:
        return self.report.failed > 0 or self.report.skipped > 0
