"""Domain models for the offline player watcher.

This package contains the data classes shared by parsing, filtering,
dispatching and configuration.
"""

from .config_models import AppConfig, AppMode, DataConfig, FilterCriteria, MailConfig, WatchConfig
from .dispatch_result import DispatchOutcome, DispatchReport, DispatchStatus, RunResult
from .error_record import ErrorRecord
from .player import Player, RawPlayer

__all__ = [
    # Configuration models
    "AppConfig",
    "AppMode",
    "DataConfig",
    "FilterCriteria",
    "MailConfig",
    "WatchConfig",
    # Player models
    "Player",
    "RawPlayer",
    # Result models
    "DispatchOutcome",
    "DispatchReport",
    "DispatchStatus",
    "ErrorRecord",
    "RunResult",
]
