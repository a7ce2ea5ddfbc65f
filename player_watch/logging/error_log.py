from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

from player_watch.models.error_record import ErrorRecord

"""Error log buffering.

Records are collected in memory during a run and written once as JSON Lines
to ``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC). Nothing is written for a
run without errors.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = Path(logs_dir) if logs_dir is not None else LOGS_DIR
        self._file_path: Path | None = None
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        with self._lock:
            return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        with self._lock:
            self._records.append(record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file.

        Returns:
            The file written, or None when the buffer was empty.
        """
        with self._lock:
            if not self._records:
                return None
            fp = self.file_path
            fp.parent.mkdir(parents=True, exist_ok=True)
            with fp.open("a", encoding="utf-8") as f:
                for r in self._records:
                    f.write(r.to_json_line() + "\n")
            self._records.clear()
            return fp
