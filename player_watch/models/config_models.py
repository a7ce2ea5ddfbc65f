from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

"""Config dataclasses for the offline player watcher.

The loader in player_watch.config.loader builds these from YAML plus
environment overrides; everything here is immutable for the duration of
one run.
"""


class AppMode(Enum):
    PROD = "prod"
    DEV = "dev"


@dataclass(frozen=True)
class AppConfig:
    """Process-level settings."""
    log_level: str = "INFO"
    mode: AppMode = AppMode.PROD
    max_workers: int = 5  # concurrent store notifications
    deadline: timedelta = timedelta(seconds=60)  # whole-run budget
    error_log_dir: str = "logs"


@dataclass(frozen=True)
class FilterCriteria:
    """Rule set deciding which players are reported as offline.

    An empty allowed_companies excludes every player.
    """
    ignored_groups: frozenset[str] = frozenset()
    ignored_tags: frozenset[str] = frozenset()
    allowed_companies: frozenset[str] = frozenset()
    max_offline: timedelta = timedelta(hours=48)


@dataclass(frozen=True)
class DataConfig:
    """Reporting API access and record interpretation settings."""
    url: str
    api_key: str
    criteria: FilterCriteria
    companies: Mapping[str, str] = field(default_factory=dict)  # tag value -> company name
    store_test_number: int = 0
    store_number_prefix: str = "store:"
    company_name_prefix: str = "company:"


@dataclass(frozen=True)
class MailConfig:
    """SMTP and template settings for store notifications."""
    host: str
    port: int
    sender: str
    recipients: tuple[str, ...]
    subject: str
    template_name: str
    templates_dir: str = "templates"
    password: str = ""
    use_ssl: bool = False
    stores: Mapping[int, str] = field(default_factory=dict)  # store number -> store label

    def store_label(self, store_number: int) -> str:
        label = self.stores.get(store_number)
        return label if label else str(store_number)


@dataclass(frozen=True)
class WatchConfig:
    """Root configuration object."""
    app: AppConfig
    data: DataConfig
    mail: MailConfig
