from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

A single bar advances once per finished store notification. In non-TTY
environments (cron, CI, cloud functions) no bar is created so logs stay free
of control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker for store notifications.

    advance() may be called from the coordinating thread only. With
    enabled=False no bar is drawn even on a TTY; counters still update.
    """

    def __init__(
        self,
        total: int,
        *,
        description: str = "Notifying stores",
        unit: str = "store",
        enabled: bool = True,
    ) -> None:
        self.total = total
        self.description = description
        self.completed = 0
        self.failed = 0

        self.enabled = enabled and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, success: bool = True) -> None:
        """Mark one more store as finished."""
        self.completed += 1
        if not success:
            self.failed += 1

        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(failed=self.failed)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
