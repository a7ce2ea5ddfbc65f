from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..fetch.client import FetchError, PlayersClient
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import component_logger
from ..mail.mailer import Mailer
from ..mail.templates import TemplateLoader, TemplateLoadError
from ..models.config_models import DataConfig, WatchConfig
from ..models.dispatch_result import RunResult
from ..models.error_record import STAGE_DISPATCH, STAGE_NORMALIZE, ErrorRecord
from ..models.player import Player
from ..parsing.normalizer import MalformedPayloadError, NormalizationResult, PlayerNormalizer
from ..parsing.tags import TagSettings
from .deadline import Deadline
from .dispatcher import Dispatcher
from .eligibility import EligibilityFilter
from .grouping import group_by_store

"""Service orchestration for one watcher run.

fetch -> normalize -> filter -> group by store -> dispatch, all under one
deadline started when the run begins. Fetch, payload and template failures
abort the run with PipelineError; per-player and per-store failures are
logged, written to the error log and counted in the RunResult.
"""


class PipelineError(Exception):
    """Fatal error that aborts a run."""


@dataclass(frozen=True)
class CollectedPlayers:
    normalized: NormalizationResult
    eligible: list[Player]
    groups: dict[int, list[Player]]


def build_tag_settings(data: DataConfig) -> TagSettings:
    return TagSettings(
        store_number_prefix=data.store_number_prefix,
        company_name_prefix=data.company_name_prefix,
        companies=dict(data.companies),
        store_test_number=data.store_test_number,
    )


def build_notifier(config: WatchConfig) -> Mailer:
    try:
        return Mailer(config.mail, TemplateLoader(config.mail.templates_dir))
    except TemplateLoadError as e:
        raise PipelineError(f"mail template initialization failed: {e}") from e


def collect_players(
    config: WatchConfig,
    client: Any,
    deadline: Deadline,
    *,
    now: datetime | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> CollectedPlayers:
    """Fetch, normalize, filter and group players.

    Raises:
        PipelineError: fetch failure or malformed payload
    """
    try:
        body = client.fetch(deadline=deadline)
    except FetchError as e:
        raise PipelineError(f"fetch failed: {e}") from e

    normalizer = PlayerNormalizer(build_tag_settings(config.data), component_logger("normalizer"))
    try:
        normalized = normalizer.normalize_players(body)
    except MalformedPayloadError as e:
        raise PipelineError(f"malformed payload: {e}") from e

    if error_log is not None:
        for rejected in normalized.errors:
            error_log.append(
                ErrorRecord.create(
                    stage=STAGE_NORMALIZE,
                    subject=f"index={rejected.index} id={rejected.raw_id}",
                    error_type=rejected.error.error_type,
                    message=str(rejected.error),
                )
            )

    eligible = EligibilityFilter(config.data.criteria, component_logger("filter")).filter(
        normalized.players, now=now
    )
    groups = group_by_store(eligible)
    return CollectedPlayers(normalized=normalized, eligible=eligible, groups=groups)


def run_pipeline(
    config: WatchConfig,
    *,
    client: Any = None,
    notifier: Any = None,
    logger: logging.Logger | None = None,
    now: datetime | None = None,
    deadline: Deadline | None = None,
    show_progress: bool = True,
) -> RunResult:
    """Run the whole pipeline once.

    Args:
        config: Loaded configuration
        client: Object with fetch(deadline) -> bytes (default PlayersClient)
        notifier: Object with send(store_number, players, deadline) (default Mailer)
        logger: Pipeline logger (default ``player_watch.pipeline``)
        now: Evaluation time for the offline threshold (default: current UTC)
        deadline: Run budget (default: config.app.deadline from now)
        show_progress: Show a tqdm bar while notifying stores (TTY only)

    Raises:
        PipelineError: any fatal-to-run failure
    """
    log = logger or component_logger("pipeline")
    start_time = datetime.now(UTC)
    started = time.perf_counter()
    if deadline is None:
        deadline = Deadline(config.app.deadline)
    error_log = ErrorLogBuffer(config.app.error_log_dir)

    # Template problems must surface before anything is fetched
    if notifier is None:
        notifier = build_notifier(config)
    if client is None:
        client = PlayersClient(config.data.url, config.data.api_key, logger=component_logger("fetch"))

    collected = collect_players(config, client, deadline, now=now, error_log=error_log)

    def notify(store_number: int, players: Sequence[Player]) -> None:
        notifier.send(store_number, players, deadline=deadline)

    dispatcher = Dispatcher(
        notify,
        config.app.max_workers,
        component_logger("dispatcher"),
        show_progress=show_progress,
    )
    report = dispatcher.dispatch(collected.groups, deadline)

    for outcome in report.outcomes:
        if outcome.ok:
            continue
        error_log.append(
            ErrorRecord.create(
                stage=STAGE_DISPATCH,
                subject=f"store={outcome.store_number} players={outcome.player_count}",
                error_type=f"DISPATCH_{outcome.status.name}",
                message=outcome.error or "",
            )
        )

    try:
        written = error_log.flush()
    except OSError as e:
        log.warning(f"error log could not be written: {e}")
    else:
        if written is not None:
            log.info(f"error log written: {written}")

    end_time = datetime.now(UTC)
    elapsed = time.perf_counter() - started
    log.debug(
        f"pipeline: offline_players={len(collected.eligible)} "
        f"all_players={len(collected.normalized.players)} elapsed_sec={elapsed:.3f}"
    )
    return RunResult(
        total_players=collected.normalized.total,
        rejected_players=len(collected.normalized.errors),
        eligible_players=len(collected.eligible),
        stores=len(collected.groups),
        report=report,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed,
    )
