"""Tests for Settings and runtime configuration parsing."""

import json
from pathlib import Path

import pytest

from pushcron.config import AppConfig, Settings, StoreConfigSource, parse_app_config
from pushcron.errors import ConfigError
from pushcron.scheduler.store import ConfigStore

VALID = {
    "notification_channels": {"server_chan": {"send_key": "SCT123"}},
    "retry_config": {"max_retry": 2, "retry_interval": 500},
}


class TestDefaults:
    def test_default_database_path(self):
        s = Settings()
        assert s.database_path == Path("data/pushcron.db")

    def test_default_tick_cron(self):
        s = Settings()
        assert s.tick_cron == "* * * * *"

    def test_default_config_key(self):
        s = Settings()
        assert s.config_key == "GLOBAL_CONFIG"

    def test_default_api_port(self):
        s = Settings()
        assert s.api_port == 8787


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})


class TestParseAppConfig:
    def test_valid(self):
        config = parse_app_config(json.dumps(VALID))
        assert isinstance(config, AppConfig)
        assert config.notification_channels["server_chan"]["send_key"] == "SCT123"
        assert config.retry_config.max_retry == 2
        assert config.retry_config.retry_interval == 500

    def test_retry_config_defaults(self):
        config = parse_app_config(json.dumps({"notification_channels": {}}))
        assert config.retry_config.max_retry == 3
        assert config.retry_config.retry_interval == 1000

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_raises(self, raw):
        with pytest.raises(ConfigError, match="not found"):
            parse_app_config(raw)

    def test_invalid_json_raises(self):
        with pytest.raises(ConfigError, match="not valid JSON"):
            parse_app_config("{not json")

    def test_non_object_raises(self):
        with pytest.raises(ConfigError, match="JSON object"):
            parse_app_config("[1, 2]")

    def test_missing_channels_raises(self):
        with pytest.raises(ConfigError, match="notification_channels"):
            parse_app_config(json.dumps({"retry_config": {"max_retry": 1}}))

    def test_channels_not_a_mapping_raises(self):
        with pytest.raises(ConfigError):
            parse_app_config(json.dumps({"notification_channels": "server_chan"}))

    def test_negative_retry_raises(self):
        raw = json.dumps({"notification_channels": {}, "retry_config": {"max_retry": -1}})
        with pytest.raises(ConfigError):
            parse_app_config(raw)

    def test_retry_is_clamped_to_settings(self):
        raw = json.dumps(
            {
                "notification_channels": {},
                "retry_config": {"max_retry": 50, "retry_interval": 120_000},
            }
        )
        config = parse_app_config(raw, Settings(max_retry_cap=5, max_retry_interval_ms=2000))
        assert config.retry_config.max_retry == 5
        assert config.retry_config.retry_interval == 2000


class TestStoreConfigSource:
    async def test_loads_from_store(self, config_store: ConfigStore):
        await config_store.put("GLOBAL_CONFIG", json.dumps(VALID))
        config = await StoreConfigSource(config_store, key="GLOBAL_CONFIG").load()
        assert list(config.notification_channels) == ["server_chan"]

    async def test_missing_key_raises(self, config_store: ConfigStore):
        with pytest.raises(ConfigError):
            await StoreConfigSource(config_store, key="GLOBAL_CONFIG").load()

    async def test_reloads_every_call(self, config_store: ConfigStore):
        source = StoreConfigSource(config_store, key="cfg")
        await config_store.put("cfg", json.dumps(VALID))
        first = await source.load()

        changed = {**VALID, "retry_config": {"max_retry": 0, "retry_interval": 0}}
        await config_store.put("cfg", json.dumps(changed))
        second = await source.load()

        assert first.retry_config.max_retry == 2
        assert second.retry_config.max_retry == 0
