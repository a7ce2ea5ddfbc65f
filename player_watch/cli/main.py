from __future__ import annotations

import argparse
import sys
from pathlib import Path

from player_watch.config.loader import ConfigError
from player_watch.config.runtime import prepare_config
from player_watch.fetch.client import PlayersClient
from player_watch.logging.init import log_summary, setup_logging
from player_watch.models.config_models import WatchConfig
from player_watch.services.deadline import Deadline
from player_watch.services.orchestrator import PipelineError, collect_players, run_pipeline
from player_watch.services.summary import render_summary_line

"""CLI entrypoint.

- Load .env, then the YAML config with environment overrides
- Run the pipeline once (or just show what would be sent with --inspect-data)
- Print the SUMMARY line and map the outcome to an exit code
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="player-watch", description="Report offline players per store by mail")
    p.add_argument("--config", type=Path, default=None, help="YAML config file (default: $PLAYER_WATCH_CONFIG or config/player_watch.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print offline players per store and exit without sending")
    return p.parse_args(argv)


def _inspect_data(cfg: WatchConfig) -> int:
    client = PlayersClient(cfg.data.url, cfg.data.api_key)
    try:
        collected = collect_players(cfg, client, Deadline(cfg.app.deadline))
    except PipelineError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL

    print(
        f"players={collected.normalized.total} rejected={len(collected.normalized.errors)} "
        f"eligible={len(collected.eligible)} stores={len(collected.groups)}"
    )
    for store_number in sorted(collected.groups):
        players = collected.groups[store_number]
        print(f"STORE: {cfg.mail.store_label(store_number)} ({store_number}) players={len(players)}")
        for p in players:
            print(f"  id={p.id} name={p.player_name} company={p.company_name} last_online={p.last_online:%Y-%m-%d %H:%M:%S}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None reads sys.argv; an explicit [] must not pick up the test runner's args
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    try:
        cfg = prepare_config(args.config, logger, debug=args.debug)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(cfg)

    logger.info(f"Fetching players from: {cfg.data.url}")
    try:
        result = run_pipeline(cfg)
    except PipelineError as e:
        logger.error(f"pipeline: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
