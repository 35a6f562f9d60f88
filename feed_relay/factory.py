"""Factory for building adapters and a RunController from RelayConfig."""

from __future__ import annotations

from pathlib import Path

from feed_relay.config import RelayConfig
from feed_relay.delivery_log import DeliveryLog
from feed_relay.identifier import Identifier
from feed_relay.runner import RunController
from feed_relay.telegram import TelegramConfig, TelegramDelivery
from feed_relay.vk import VkConfig, VkSource
from feed_relay.watermark import WatermarkStore, save_watermarks


def build_sources(cfg: RelayConfig) -> list[tuple[VkSource, Identifier]]:
    """One shared VK client, paired with every configured account id."""
    if not cfg.vk:
        return []
    client = VkSource(VkConfig(token=cfg.vk_token, count=cfg.posts_per_source))
    return [(client, account.id) for account in cfg.vk]


def build_delivery(cfg: RelayConfig) -> TelegramDelivery | None:
    if not cfg.telegram_token or cfg.telegram_channel is None:
        return None
    return TelegramDelivery(
        TelegramConfig(token=cfg.telegram_token, channel_id=cfg.telegram_channel),
    )


def build_delivery_log(cfg: RelayConfig) -> DeliveryLog | None:
    if not cfg.delivery_log_path:
        return None
    return DeliveryLog(Path(cfg.delivery_log_path))


def build_controller(
    cfg: RelayConfig,
    store: WatermarkStore,
    cache_path: Path | None = None,
    delivery_log: DeliveryLog | None = None,
) -> RunController:
    """Build a fully wired RunController.

    Args:
        cfg: Relay configuration with tokens and sources.
        store: Watermark store loaded by the caller.
        cache_path: Where to persist the store. Defaults to cfg.cache_path.
        delivery_log: Optional pre-built log. If None, one is built from
            cfg.delivery_log_path when set.
    """
    path = cache_path or Path(cfg.cache_path)
    if delivery_log is None:
        delivery_log = build_delivery_log(cfg)

    return RunController(
        build_sources(cfg),
        build_delivery(cfg),
        store,
        persist=lambda s: save_watermarks(s, path),
        delivery_log=delivery_log,
    )
