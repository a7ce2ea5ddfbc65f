from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from player_watch.config.loader import ConfigError
from player_watch.config.runtime import prepare_config
from player_watch.logging.init import log_summary, setup_logging
from player_watch.services.orchestrator import PipelineError, run_pipeline
from player_watch.services.summary import render_summary_line

"""Serverless entrypoint.

The same pipeline runs whether the function is woken by a timer trigger or
called over HTTP; only the log line differs. HTTP callers get the Response,
timer invocations ignore it.
"""

__all__ = [
    "Response",
    "detect_trigger_type",
    "handle",
]

TRIGGER_TIMER = "timer"
TRIGGER_HTTP = "http"
TRIGGER_UNKNOWN = "unknown"

SUCCESS_BODY = "Successful response"


@dataclass(frozen=True)
class Response:
    status_code: int
    body: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "body": self.body}


def detect_trigger_type(event: Any) -> str:
    """Classify an invocation event as timer, http or unknown."""
    if not isinstance(event, Mapping):
        return TRIGGER_UNKNOWN
    if event.get("trigger_type") == "TIMER":
        return TRIGGER_TIMER
    if event.get("http_method"):
        return TRIGGER_HTTP
    return TRIGGER_UNKNOWN


def handle(
    event: Any,
    config_path: Path | None = None,
    *,
    client: Any = None,
    notifier: Any = None,
) -> Response:
    """Run the pipeline once for a trigger event.

    Returns:
        200 with a fixed body on success (failed store mails included),
        500 with no body when the run could not complete
    """
    logger = setup_logging()
    logger.info(f"handler: starting trigger_type={detect_trigger_type(event)}")

    try:
        cfg = prepare_config(config_path, logger)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return Response(status_code=500, body=None)

    try:
        result = run_pipeline(cfg, client=client, notifier=notifier, show_progress=False)
    except PipelineError as e:
        logger.error(f"pipeline: {e}")
        return Response(status_code=500, body=None)

    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    return Response(status_code=200, body=SUCCESS_BODY)
