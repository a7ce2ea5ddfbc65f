from __future__ import annotations

from ..models.dispatch_result import RunResult

"""SUMMARY line rendering.

Format:
SUMMARY players={total} rejected={rejected} eligible={eligible} stores={stores}
sent={sent} failed={failed} skipped={skipped} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for one run.

    >>> from datetime import datetime, timezone
    >>> from player_watch.models.dispatch_result import DispatchReport
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> render_summary_line(RunResult(3, 1, 2, 1, DispatchReport(), t, t, 2.0))
    'SUMMARY players=3 rejected=1 eligible=2 stores=1 sent=0 failed=0 skipped=0 elapsed_sec=2'
    """
    report = result.report
    return (
        f"SUMMARY players={result.total_players} "
        f"rejected={result.rejected_players} "
        f"eligible={result.eligible_players} "
        f"stores={result.stores} "
        f"sent={report.sent} "
        f"failed={report.failed} "
        f"skipped={report.skipped} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
