"""Tests for unmask/config.py - loading, migration, env overrides, singleton."""

import json

import pytest

from unmask.config import (
    CONFIG_VERSION,
    UnmaskConfig,
    get_config,
    load_config,
    reset_config,
    save_config,
)


class TestDefaults:
    def test_defaults(self):
        config = UnmaskConfig()
        assert config.chunking.gap_minutes == 30
        assert config.chunking.max_embedding_chars == 2000
        assert config.chunking.batch_size == 1000
        assert config.llm.embedding_dimension == 1536
        assert config.orchestrator.intent_mode == "keyword"
        assert config.rate_limit.llm_limit == "10/minute"
        assert config.server.port == 8600

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            UnmaskConfig.model_validate({"chunking": {"gap_minutes": 0}})
        with pytest.raises(ValueError):
            UnmaskConfig.model_validate({"orchestrator": {"intent_mode": "magic"}})


class TestLoadConfig:
    """Test reading the config file."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.json")
        assert config.chunking.gap_minutes == 30

    def test_reads_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"config_version": CONFIG_VERSION, "chunking": {"gap_minutes": 45}})
        )
        assert load_config(path).chunking.gap_minutes == 45

    def test_invalid_json_uses_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(path).chunking.gap_minutes == 30

    def test_invalid_values_use_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"config_version": CONFIG_VERSION, "server": {"port": -1}}))
        assert load_config(path).server.port == 8600

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = UnmaskConfig()
        config.orchestrator.history_limit = 4
        assert save_config(config, path) is True
        assert load_config(path).orchestrator.history_limit == 4
        assert path.stat().st_mode & 0o777 == 0o600


class TestMigration:
    def test_v1_flat_openai_keys_moved(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"openai_api_key": "sk-old", "openai_model": "gpt-4o"}))
        config = load_config(path)
        assert config.llm.api_key == "sk-old"
        assert config.llm.chat_model == "gpt-4o"

    def test_gap_ms_converted_to_minutes(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"config_version": 2, "chunking": {"gap_ms": 1800000}}))
        assert load_config(path).chunking.gap_minutes == 30

    def test_migrated_config_persisted(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"config_version": 1}))
        load_config(path)
        assert json.loads(path.read_text())["config_version"] == CONFIG_VERSION


class TestEnvOverrides:
    def test_db_path_and_api_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv("UNMASK_DB_PATH", "/data/unmask.db")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        config = load_config(tmp_path / "missing.json")
        assert config.database.path == "/data/unmask.db"
        assert config.llm.api_key == "sk-env"

    def test_env_wins_over_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"config_version": CONFIG_VERSION, "llm": {"api_key": "sk-file"}})
        )
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert load_config(path).llm.api_key == "sk-env"


class TestSingleton:
    def test_get_config_cached_until_reset(self):
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first

    def test_get_config_reads_config_path(self, tmp_path):
        (tmp_path / "config.json").write_text(
            json.dumps({"config_version": CONFIG_VERSION, "server": {"port": 9000}})
        )
        reset_config()
        assert get_config().server.port == 9000
