from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the run error log.

One record is written for every player dropped during normalization and for
every store whose notification failed or was skipped. The JSON Lines schema
is fixed: timestamp, stage, subject, error_type, message.
"""

__all__ = [
    "ErrorRecord",
    "STAGE_NORMALIZE",
    "STAGE_DISPATCH",
]

STAGE_NORMALIZE = "normalize"
STAGE_DISPATCH = "dispatch"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        stage: Pipeline stage that produced the error (normalize | dispatch)
        subject: Player identifier or store number the error refers to
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    stage: str
    subject: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(stage: str, subject: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            stage=stage,
            subject=subject,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
