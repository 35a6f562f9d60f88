"""Tests for the CLI entry point."""

import json
import logging

import pytest

from feed_relay import cli
from feed_relay.config import RelayConfig
from feed_relay.runner import RunMode, RunSummary


def _write_config(tmp_path, extra=""):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "vk_token: vk-secret\n"
        "telegram_token: tg-secret\n"
        "telegram_channel: -100\n"
        "vk:\n  - id: 1\n    name: One\n"
        + extra,
        encoding="utf-8",
    )
    return path


class TestMain:
    def test_no_command_prints_help(self, capsys):
        cli.main([])
        assert "usage" in capsys.readouterr().out.lower()

    def test_status_shows_watermarks(self, tmp_path, capsys):
        cache = tmp_path / "cache.json"
        cache.write_text(json.dumps({"vk": {"1": 55}}), encoding="utf-8")
        cli.main(["--config", str(_write_config(tmp_path)), "--cache", str(cache), "status"])
        out = capsys.readouterr().out
        assert "1 (One): 55" in out
        assert "Telegram: configured" in out

    def test_status_lists_group_id_watermarks_for_domain_sources(self, tmp_path, capsys):
        cache = tmp_path / "cache.json"
        cache.write_text(json.dumps({"vk": {"12345": 77}}), encoding="utf-8")
        config = _write_config(tmp_path, "  - id: apiclub\n")
        cli.main(["--config", str(config), "--cache", str(cache), "status"])
        out = capsys.readouterr().out
        assert "apiclub: no watermark" in out
        assert "Other watermarks (by group id):" in out
        assert "12345: 77" in out

    def test_run_with_invalid_config_exits(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("vk: []\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--config", str(path), "run"])
        assert exc_info.value.code == 1

    def test_run_populate_uses_populate_mode(self, tmp_path, monkeypatch, capsys):
        modes = []

        class _Controller:
            async def run(self, mode):
                modes.append(mode)
                return RunSummary(mode=mode, persisted=True)

        monkeypatch.setattr(cli, "build_controller", lambda cfg, store, cache_path: _Controller())
        monkeypatch.setattr(cli, "configure_logging", lambda cfg: None)
        cache = tmp_path / "cache.json"
        cli.main(["--config", str(_write_config(tmp_path)), "--cache", str(cache), "run", "--populate"])

        assert modes == [RunMode.POPULATE]
        assert "0 sources" in capsys.readouterr().out

    def test_log_without_path_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            cli.main(["--config", str(_write_config(tmp_path)), "log"])


class TestLogging:
    def test_redacting_formatter_masks_tokens(self):
        formatter = cli.RedactingFormatter(["tg-secret"], fmt="%(message)s")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "url bot%s/send", ("tg-secret",), None)
        assert formatter.format(record) == "url bot***/send"

    def test_configure_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "relay.log"
        cfg = RelayConfig(telegram_token="tg-secret", log_level="WARNING", log_file=str(log_file))
        cli.configure_logging(cfg)
        try:
            logging.getLogger("feed_relay.test").warning("token tg-secret leaked")
            for handler in logging.getLogger().handlers:
                handler.flush()
            text = log_file.read_text(encoding="utf-8")
            assert "***" in text
            assert "tg-secret" not in text
        finally:
            for handler in list(logging.getLogger().handlers):
                logging.getLogger().removeHandler(handler)
                handler.close()
