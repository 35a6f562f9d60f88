"""Tests for the controller factory."""

from pathlib import Path

from feed_relay.config import RelayConfig, SourceAccount
from feed_relay.delivery_log import DeliveryLog
from feed_relay.factory import build_controller, build_delivery, build_delivery_log, build_sources
from feed_relay.identifier import Identifier
from feed_relay.runner import RunController
from feed_relay.telegram import TelegramDelivery
from feed_relay.watermark import WatermarkStore


class TestBuildSources:
    def test_empty(self):
        assert build_sources(RelayConfig()) == []

    def test_shared_client_per_account(self):
        cfg = RelayConfig(
            vk_token="t",
            posts_per_source=7,
            vk=[SourceAccount(id=Identifier.number(1)), SourceAccount(id=Identifier.string("dom"))],
        )
        sources = build_sources(cfg)
        assert [str(sid) for _, sid in sources] == ["1", "dom"]
        assert sources[0][0] is sources[1][0]
        assert sources[0][0].config.count == 7


class TestBuildDelivery:
    def test_without_credentials(self):
        assert build_delivery(RelayConfig()) is None

    def test_with_credentials(self):
        cfg = RelayConfig(telegram_token="x", telegram_channel=Identifier.string("-1"))
        assert isinstance(build_delivery(cfg), TelegramDelivery)


class TestBuildController:
    def test_build_with_empty_config(self):
        controller = build_controller(RelayConfig(), WatermarkStore())
        assert isinstance(controller, RunController)

    def test_delivery_log_from_config(self, tmp_path):
        cfg = RelayConfig(delivery_log_path=str(tmp_path / "log.json"))
        assert isinstance(build_delivery_log(cfg), DeliveryLog)
        assert build_delivery_log(RelayConfig()) is None

    def test_persist_writes_cache_path(self, tmp_path):
        cache = tmp_path / "cache.json"
        store = WatermarkStore({"1": 4})
        controller = build_controller(RelayConfig(), store, cache_path=cache)
        controller._persist(store)
        assert cache.exists()

    def test_default_cache_path_from_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        controller = build_controller(RelayConfig(cache_path="c.json"), WatermarkStore())
        controller._persist(controller.store)
        assert Path("c.json").exists()
