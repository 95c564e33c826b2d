"""
Unit tests for configuration loading.
"""
import json
from pathlib import Path

import pytest

from config import DATA_VERSION, DEFAULT_LOCAL_STORAGE, Config


@pytest.fixture
def clean_env(monkeypatch, temp_dir):
    """Remove PO_* variables and point CONFIG_DIR at an empty directory."""
    for name in (
        "PO_STORAGE_BACKEND", "PO_LOCAL_STORAGE", "PO_DOCUMENT_DB",
        "PO_SEED_DIR", "PO_SEED_ON_LOAD", "PO_ORDER_NUMBER_FLOOR",
    ):
        monkeypatch.delenv(name, raising=False)
    config_dir = temp_dir / "config"
    config_dir.mkdir()
    monkeypatch.setenv("CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.mark.unit
class TestConfig:
    """Tests for Config defaults, environment and settings-file overrides."""

    def test_defaults(self, clean_env):
        config = Config()
        assert config.storage_backend == "local"
        assert config.local_storage_path == DEFAULT_LOCAL_STORAGE
        assert config.seed_on_load is True
        assert config.order_number_floor == 0
        assert config.data_version == DATA_VERSION

    def test_environment_overrides(self, clean_env, monkeypatch, temp_dir):
        monkeypatch.setenv("PO_STORAGE_BACKEND", "document")
        monkeypatch.setenv("PO_DOCUMENT_DB", str(temp_dir / "db.sqlite"))
        monkeypatch.setenv("PO_SEED_ON_LOAD", "false")
        monkeypatch.setenv("PO_ORDER_NUMBER_FLOOR", "29")

        config = Config()
        assert config.storage_backend == "document"
        assert config.document_db_path == temp_dir / "db.sqlite"
        assert config.seed_on_load is False
        assert config.order_number_floor == 29

    def test_settings_file_overlay(self, clean_env, temp_dir):
        """Test po_settings.json overrides defaults and ignores _comment keys."""
        (clean_env / "po_settings.json").write_text(json.dumps({
            "_comment": "edited by admin",
            "storage_backend": "document",
            "order_number_floor": 10,
            "seed_dir": str(temp_dir / "seed"),
        }))

        config = Config()
        assert config.storage_backend == "document"
        assert config.order_number_floor == 10
        assert config.seed_dir == Path(temp_dir / "seed")

    def test_environment_beats_settings_file(self, clean_env, monkeypatch):
        (clean_env / "po_settings.json").write_text(json.dumps({"storage_backend": "document"}))
        monkeypatch.setenv("PO_STORAGE_BACKEND", "local")
        assert Config().storage_backend == "local"

    def test_broken_settings_file_ignored(self, clean_env):
        (clean_env / "po_settings.json").write_text("{not json")
        assert Config().storage_backend == "local"

    def test_ensure_dirs(self, test_config):
        test_config.ensure_dirs()
        assert test_config.local_storage_path.parent.is_dir()
        assert test_config.document_db_path.parent.is_dir()
