"""
Tests for YAML configuration loading.
"""
from pathlib import Path

import pytest

from tenderscore.core.config import (
    ConfigError,
    EvaluationMode,
    load_app_config,
    validate_app_config_file,
)

REPO_CONFIG = Path(__file__).resolve().parent.parent / "configs" / "app.yaml"


def _write(tmp_path, text):
    path = tmp_path / "app.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadAppConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_app_config(tmp_path / "nope.yaml")
        assert config.worker.poll_interval_seconds == 3
        assert config.worker.max_loop_seconds == 50
        assert config.worker.default_max_retries == 5
        assert config.evaluation.default_mode is EvaluationMode.INCREMENTAL
        assert config.evaluation.batch_cron is None

    def test_repository_config_is_valid(self, monkeypatch):
        monkeypatch.delenv("TENDERSCORE_DATABASE_URL", raising=False)
        config = load_app_config(REPO_CONFIG)
        assert config.database.url == "sqlite:///data/tenderscore.db"
        assert validate_app_config_file(REPO_CONFIG) == []

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TENDERSCORE_DATABASE_URL", "postgresql://db/tenders")
        path = _write(tmp_path, "database:\n  url: ${TENDERSCORE_DATABASE_URL:-sqlite://}\n")
        assert load_app_config(path).database.url == "postgresql://db/tenders"

        monkeypatch.delenv("TENDERSCORE_DATABASE_URL")
        assert load_app_config(path).database.url == "sqlite://"

    def test_empty_file(self, tmp_path):
        assert load_app_config(_write(tmp_path, "")).worker.lease_seconds == 300

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "worker: [unclosed\n")
        with pytest.raises(ConfigError) as exc_info:
            load_app_config(path)
        assert exc_info.value.path == path
        assert exc_info.value.details

    def test_budget_below_poll_interval(self, tmp_path):
        path = _write(tmp_path, "worker:\n  poll_interval_seconds: 10\n  max_loop_seconds: 5\n")
        with pytest.raises(ConfigError, match="Invalid app configuration"):
            load_app_config(path)
        assert any("max_loop_seconds" in error for error in validate_app_config_file(path))

    def test_unknown_mode_rejected(self, tmp_path):
        path = _write(tmp_path, "evaluation:\n  default_mode: sometimes\n")
        with pytest.raises(ConfigError):
            load_app_config(path)
