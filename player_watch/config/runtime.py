from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

from player_watch.config.loader import load_config, redacted, resolve_config_path
from player_watch.logging.init import set_level
from player_watch.models.config_models import AppMode, WatchConfig

"""Configuration bootstrap shared by every entrypoint.

The CLI and the serverless handler must run the same pipeline for the same
deployment, so both go through prepare_config(): .env, then YAML plus
environment overrides, then the configured log level, then the dev-mode
config dump.
"""

__all__ = [
    "ENV_FILE",
    "load_env_file",
    "prepare_config",
]

ENV_FILE = Path(".env")


def load_env_file(path: Path = ENV_FILE, override: bool = False) -> None:
    """Load .env with python-dotenv; variables already set in the process win."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def prepare_config(
    config_path: Path | None,
    logger: logging.Logger,
    *,
    debug: bool = False,
    env_file: Path = ENV_FILE,
) -> WatchConfig:
    """Load the effective configuration and apply its logging settings.

    Args:
        config_path: Explicit YAML file, or None to resolve the default
        logger: Application logger receiving the dev-mode dump
        debug: Force DEBUG regardless of app.log_level
        env_file: dotenv file loaded before the config

    Raises:
        ConfigError: any loading or validation problem
    """
    load_env_file(env_file)
    cfg = load_config(resolve_config_path(config_path))

    set_level(logging.DEBUG if debug else cfg.app.log_level)
    if cfg.app.mode is AppMode.DEV:
        logger.debug(f"config: {redacted(cfg)}")
    return cfg
