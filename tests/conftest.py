# Shared pytest fixtures
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from player_watch.config.loader import CONFIG_PATH_ENV, ENV_OVERRIDES
from player_watch.logging.init import reset_logging

TEMPLATE_HTML = """<p>{{ store_id }}: {{ players | length }}</p>
{% for p in players %}<li>{{ p.id }} {{ p.player_name }} {{ p.mac }}</li>{% endfor %}
"""


@pytest.fixture(autouse=True)
def clean_env():
    """Keep the developer's APP_/DATA_/MAIL_ variables out of every test.

    The whole environment is restored afterwards, which also drops anything
    a test loaded from a .env file.
    """
    with patch.dict(os.environ):
        for name in list(ENV_OVERRIDES) + [CONFIG_PATH_ENV]:
            os.environ.pop(name, None)
        yield


@pytest.fixture(autouse=True)
def fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "templates").mkdir()
        (p / "templates" / "offline_players.html").write_text(TEMPLATE_HTML, encoding="utf-8")
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """app:
  log_level: INFO
  max_workers: 2
  deadline: 30s
  error_log_dir: logs
data:
  url: http://reports.test/api/players
  api_key: secret-key
  ignored_groups: [Warehouse]
  ignored_tags: [decommissioned]
  allowed_companies: [Acme Retail, Beta Stores]
  companies:
    acme: Acme Retail
    beta: Beta Stores
  max_offline: 48h
  store_test_number: 9999
  store_number_prefix: "store:"
  company_name_prefix: "company:"
mail:
  host: smtp.test
  port: 587
  sender: monitor@example.com
  password: mail-secret
  recipients: [ops@example.com, support@example.com]
  subject: "Offline players in store {{ store_id }}"
  template_name: offline_players
  templates_dir: templates
  stores:
    1042: S-1042
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "player_watch.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
