"""Tests for the config module."""

from pathlib import Path

import pytest

from feed_relay.config import RelayConfig, load_config, validate_for_run
from feed_relay.errors import ConfigError
from feed_relay.identifier import Identifier

FIXTURES = Path(__file__).parent / "fixtures"


class TestConfig:
    def test_load_from_yaml(self):
        cfg = load_config(FIXTURES / "sample_config.yaml")
        assert cfg.vk_token == "vk-test-token"
        assert cfg.telegram_token == "123456:tg-test-token"
        assert str(cfg.telegram_channel) == "-1001234567890"
        assert cfg.cache_path == "cache.json"
        assert cfg.posts_per_source == 10
        assert cfg.log_level == "DEBUG"

    def test_accounts(self):
        cfg = load_config(FIXTURES / "sample_config.yaml")
        assert [str(a.id) for a in cfg.vk] == ["12345", "somedomain", "67890"]
        assert cfg.vk[0].name == "Numeric group"
        assert cfg.vk[1].url == "https://vk.com/somedomain"
        assert cfg.vk[2].id == Identifier.number(67890)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FEED_RELAY_VK_TOKEN", "env-token")
        monkeypatch.setenv("FEED_RELAY_TELEGRAM_CHANNEL", "@mychannel")
        cfg = load_config(FIXTURES / "sample_config.yaml")
        assert cfg.vk_token == "env-token"
        assert str(cfg.telegram_channel) == "@mychannel"

    def test_default_config(self):
        cfg = load_config()
        assert cfg.vk_token == ""
        assert cfg.telegram_channel is None
        assert cfg.vk == []
        assert cfg.cache_path == ".cache.feed-relay.json"

    def test_missing_file(self):
        cfg = load_config(Path("/nonexistent/config.yaml"))
        assert cfg.vk_token == ""

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("vk: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_integer_posts_per_source(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("posts_per_source: many\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="posts_per_source"):
            load_config(path)

    def test_account_without_id(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("vk:\n  - name: nameless\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_secrets(self):
        cfg = RelayConfig(vk_token="a", telegram_token="b")
        assert cfg.secrets == ["a", "b"]


class TestValidate:
    def test_full_config_is_valid(self):
        validate_for_run(load_config(FIXTURES / "sample_config.yaml"))

    def test_missing_telegram(self):
        cfg = RelayConfig(vk_token="t")
        with pytest.raises(ConfigError, match="telegram_token"):
            validate_for_run(cfg)

    def test_populate_does_not_need_telegram(self):
        validate_for_run(RelayConfig(vk_token="t"), populate=True)

    def test_vk_token_always_required(self):
        with pytest.raises(ConfigError, match="vk_token"):
            validate_for_run(RelayConfig(), populate=True)
