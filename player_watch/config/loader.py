from __future__ import annotations

import json
import os
import re
from collections.abc import Callable, Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from player_watch.models.config_models import (
    AppConfig,
    AppMode,
    DataConfig,
    FilterCriteria,
    MailConfig,
    WatchConfig,
)

"""Config loader.

Responsibilities:
- Load the YAML file (optional: a deployment may configure purely via env)
- Overlay environment variables (names follow the APP_/DATA_/MAIL_ scheme)
- Validate the merged document against config_schema.json
- Convert to frozen dataclasses, parsing durations such as ``48h`` or ``1h30m``
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/player_watch.yml")
CONFIG_PATH_ENV = "PLAYER_WATCH_CONFIG"

SECRET_KEYS = {"api_key", "password"}


class ConfigError(Exception):
    pass


# ---------------------------------------------------------------------------
# value parsers
# ---------------------------------------------------------------------------

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | int | float) -> timedelta:
    """Parse a Go-style duration (``48h``, ``1h30m``, ``500ms``).

    Plain numbers are taken as seconds.

    Raises:
        ConfigError: malformed duration text
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = value.strip()
    if text == "0":
        return timedelta(0)

    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    pos = 0
    total = 0.0
    for m in _DURATION_PART_RE.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(text) or pos == 0:
        raise ConfigError(f"invalid duration: {value!r}")
    return timedelta(seconds=sign * total)


def _split_list(text: str) -> list[str]:
    return [item for item in text.split(",") if item != ""]


def _split_map(text: str) -> dict[str, str]:
    result: dict[str, str] = {}
    for item in _split_list(text):
        key, sep, val = item.partition(":")
        if not sep:
            raise ConfigError(f"invalid map entry {item!r}: expected key:value")
        result[key] = val
    return result


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError as e:
        raise ConfigError(f"invalid integer: {text!r}") from e


def _normalize_level(name: str) -> str:
    upper = name.upper()
    return "WARNING" if upper == "WARN" else upper


def _to_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"invalid boolean: {text!r}")


# env var -> (section, key, parser)
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "APP_LOG_LEVEL": ("app", "log_level", str.upper),
    "APP_MODE": ("app", "mode", str.lower),
    "APP_MAX_GOROUTINES": ("app", "max_workers", _to_int),
    "APP_MAX_WORKERS": ("app", "max_workers", _to_int),
    "APP_DEADLINE": ("app", "deadline", str),
    "APP_ERROR_LOG_DIR": ("app", "error_log_dir", str),
    "DATA_URL": ("data", "url", str),
    "DATA_API_KEY": ("data", "api_key", str),
    "DATA_IGNORED_GROUPS": ("data", "ignored_groups", _split_list),
    "DATA_IGNORED_TAGS": ("data", "ignored_tags", _split_list),
    "DATA_ALLOWED_COMPANIES": ("data", "allowed_companies", _split_list),
    "DATA_COMPANIES": ("data", "companies", _split_map),
    "DATA_MAX_OFFLINE": ("data", "max_offline", str),
    "DATA_STORE_TEST_NUMBER": ("data", "store_test_number", _to_int),
    "DATA_STORE_NUMBER_PREFIX": ("data", "store_number_prefix", str),
    "DATA_COMPANY_NAME_PREFIX": ("data", "company_name_prefix", str),
    "MAIL_FROM": ("mail", "sender", str),
    "MAIL_HOST": ("mail", "host", str),
    "MAIL_PASSWORD": ("mail", "password", str),
    "MAIL_PORT": ("mail", "port", _to_int),
    "MAIL_TO": ("mail", "recipients", _split_list),
    "MAIL_STORES": ("mail", "stores", _split_map),
    "MAIL_SUBJECT": ("mail", "subject", str),
    "MAIL_TEMPLATE_NAME": ("mail", "template_name", str),
    "MAIL_TEMPLATES_DIR": ("mail", "templates_dir", str),
    "MAIL_USE_SSL": ("mail", "use_ssl", _to_bool),
}


# ---------------------------------------------------------------------------
# loading
# ---------------------------------------------------------------------------

def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return data


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    env = os.environ if environ is None else environ
    merged: dict[str, Any] = {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
    for name, (section, key, parse) in ENV_OVERRIDES.items():
        if name not in env:
            continue
        target = merged.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"config section '{section}' must be a mapping")
        target[key] = parse(env[name])
    return merged


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing/invalid or validation failure
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        raise ConfigError(f"config validation failed at '{location}': {e.message}") from e


def resolve_config_path(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Path | None:
    """Explicit path, else $PLAYER_WATCH_CONFIG, else the default file if it exists."""
    if path is not None:
        return path
    env = os.environ if environ is None else environ
    if env.get(CONFIG_PATH_ENV):
        return Path(env[CONFIG_PATH_ENV])
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> WatchConfig:
    """Load, merge, validate and convert the configuration.

    Args:
        path: YAML file; None configures from the environment only
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: any loading, validation or conversion problem
    """
    data = _read_yaml(path) if path is not None else {}
    data = apply_env_overrides(data, environ)
    _validate_config_schema(data)
    return _build_config(data)


def _build_config(data: dict[str, Any]) -> WatchConfig:
    app_raw = data.get("app", {})
    data_raw = data["data"]
    mail_raw = data["mail"]

    app = AppConfig(
        log_level=_normalize_level(app_raw.get("log_level", "INFO")),
        mode=AppMode(app_raw.get("mode", AppMode.PROD.value)),
        max_workers=app_raw.get("max_workers", 5),
        deadline=parse_duration(app_raw.get("deadline", "60s")),
        error_log_dir=app_raw.get("error_log_dir", "logs"),
    )

    criteria = FilterCriteria(
        ignored_groups=frozenset(data_raw.get("ignored_groups", [])),
        ignored_tags=frozenset(data_raw.get("ignored_tags", [])),
        allowed_companies=frozenset(data_raw.get("allowed_companies", [])),
        max_offline=parse_duration(data_raw["max_offline"]),
    )
    data_cfg = DataConfig(
        url=data_raw["url"],
        api_key=data_raw["api_key"],
        criteria=criteria,
        companies=dict(data_raw.get("companies", {})),
        store_test_number=data_raw.get("store_test_number", 0),
        store_number_prefix=data_raw["store_number_prefix"],
        company_name_prefix=data_raw["company_name_prefix"],
    )

    stores: dict[int, str] = {}
    for key, label in mail_raw.get("stores", {}).items():
        try:
            stores[int(str(key).strip())] = label
        except ValueError as e:
            raise ConfigError(f"invalid store number in mail.stores: {key!r}") from e

    mail = MailConfig(
        host=mail_raw["host"],
        port=mail_raw["port"],
        sender=mail_raw["sender"],
        recipients=tuple(mail_raw["recipients"]),
        subject=mail_raw["subject"],
        template_name=mail_raw["template_name"],
        templates_dir=mail_raw.get("templates_dir", "templates"),
        password=mail_raw.get("password", ""),
        use_ssl=mail_raw.get("use_ssl", False),
        stores=stores,
    )
    return WatchConfig(app=app, data=data_cfg, mail=mail)


def redacted(config: WatchConfig) -> dict[str, Any]:
    """Plain dict view of the config with secrets masked, for debug logging."""
    def mask(section: Any) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in vars(section).items():
            if key in SECRET_KEYS and value:
                out[key] = "***"
            elif isinstance(value, timedelta):
                out[key] = str(value)
            elif isinstance(value, AppMode):
                out[key] = value.value
            elif isinstance(value, FilterCriteria):
                out[key] = {k: (sorted(v) if isinstance(v, frozenset) else str(v)) for k, v in vars(value).items()}
            elif isinstance(value, Mapping):
                out[key] = dict(value)
            else:
                out[key] = value
        return out

    return {"app": mask(config.app), "data": mask(config.data), "mail": mask(config.mail)}
