from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from player_watch.logging.init import component_logger
from player_watch.models.dispatch_result import DispatchOutcome, DispatchReport, DispatchStatus
from player_watch.models.player import Player
from player_watch.services.deadline import Deadline
from player_watch.services.progress import ProgressTracker

"""Per-store notification dispatch with bounded concurrency.

One attempt is started per store group. A bounded semaphore admits at most
``max_concurrency`` attempts at a time; the submitting loop blocks on it
until a slot frees up or the run deadline runs out. Every attempt is joined
before dispatch() returns.

A notifier exception is turned into a FAILED outcome for that store only.
Stores that could not start before the deadline are SKIPPED. Store order is
whatever the mapping yields and carries no meaning.
"""

__all__ = [
    "Notify",
    "Dispatcher",
]

Notify = Callable[[int, Sequence[Player]], None]


class Dispatcher:
    def __init__(
        self,
        notify: Notify,
        max_concurrency: int,
        logger: logging.Logger | None = None,
        *,
        show_progress: bool = True,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.notify = notify
        self.max_concurrency = max_concurrency
        self.logger = logger or component_logger("dispatcher")
        self.show_progress = show_progress

    def dispatch(
        self,
        groups: Mapping[int, Sequence[Player]],
        deadline: Deadline | None = None,
    ) -> DispatchReport:
        """Notify every store group and wait for all attempts.

        Args:
            groups: store number -> players of that store
            deadline: Run budget; None waits indefinitely for free slots

        Returns:
            DispatchReport with exactly one outcome per group
        """
        start = time.perf_counter()
        outcomes: list[DispatchOutcome] = []
        if not groups:
            return DispatchReport(outcomes)

        gate = threading.BoundedSemaphore(self.max_concurrency)
        futures: dict[Future[DispatchOutcome], int] = {}

        with ProgressTracker(len(groups), enabled=self.show_progress) as progress:
            with ThreadPoolExecutor(max_workers=self.max_concurrency, thread_name_prefix="notify") as pool:
                for store_number, players in groups.items():
                    timeout = deadline.remaining() if deadline is not None else None
                    if not gate.acquire(timeout=timeout):
                        outcome = self._skipped(store_number, players)
                        outcomes.append(outcome)
                        progress.advance(success=False)
                        continue
                    future = pool.submit(self._attempt, gate, store_number, players, deadline)
                    futures[future] = store_number

                for future in as_completed(futures):
                    outcome = future.result()
                    outcomes.append(outcome)
                    progress.advance(success=outcome.ok)

        report = DispatchReport(outcomes)
        self.logger.debug(
            f"dispatch: stores={len(groups)} sent={report.sent} failed={report.failed} "
            f"skipped={report.skipped} elapsed_sec={time.perf_counter() - start:.3f}"
        )
        return report

    def _attempt(
        self,
        gate: threading.BoundedSemaphore,
        store_number: int,
        players: Sequence[Player],
        deadline: Deadline | None,
    ) -> DispatchOutcome:
        try:
            if deadline is not None and deadline.expired:
                return self._skipped(store_number, players)

            started = time.perf_counter()
            try:
                self.notify(store_number, players)
            except Exception as e:
                elapsed = time.perf_counter() - started
                self.logger.error(
                    f"dispatch: failed to send mail store={store_number} players={len(players)} err={e}"
                )
                return DispatchOutcome(
                    store_number=store_number,
                    player_count=len(players),
                    status=DispatchStatus.FAILED,
                    error=str(e) or type(e).__name__,
                    elapsed_seconds=elapsed,
                )

            elapsed = time.perf_counter() - started
            self.logger.debug(f"dispatch: sent store={store_number} players={len(players)} elapsed_sec={elapsed:.3f}")
            return DispatchOutcome(
                store_number=store_number,
                player_count=len(players),
                status=DispatchStatus.SENT,
                elapsed_seconds=elapsed,
            )
        finally:
            gate.release()

    def _skipped(self, store_number: int, players: Sequence[Player]) -> DispatchOutcome:
        self.logger.warning(f"dispatch: deadline expired, skipped store={store_number} players={len(players)}")
        return DispatchOutcome(
            store_number=store_number,
            player_count=len(players),
            status=DispatchStatus.SKIPPED,
            error="deadline expired before the notification started",
        )
