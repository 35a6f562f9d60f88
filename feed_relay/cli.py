"""CLI entry point for feed-relay.

Usage:
    feed-relay [--config PATH] [--cache PATH] run [--populate]
    feed-relay [--config PATH] [--cache PATH] status
    feed-relay [--config PATH] log [--failures]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from feed_relay.config import RelayConfig, load_config, validate_for_run
from feed_relay.delivery_log import DeliveryLog
from feed_relay.errors import ConfigError
from feed_relay.factory import build_controller
from feed_relay.runner import RunMode
from feed_relay.watermark import load_watermarks

LOGGER = logging.getLogger("feed_relay")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class RedactingFormatter(logging.Formatter):
    """Masks API tokens in formatted records."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def configure_logging(cfg: RelayConfig) -> None:
    level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    formatter = RedactingFormatter(cfg.secrets, fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: list[logging.Handler] = []
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if cfg.log_file:
        path = Path(cfg.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)


def cmd_run(cfg: RelayConfig, cache: Path, populate: bool) -> None:
    store, problem = load_watermarks(cache)
    if problem is not None:
        LOGGER.warning("Failed to parse cache file, starting empty: %s", problem)

    controller = build_controller(cfg, store, cache_path=cache)
    mode = RunMode.POPULATE if populate else RunMode.NORMAL
    summary = asyncio.run(controller.run(mode))
    print(summary.describe())


def cmd_status(cfg: RelayConfig, cache: Path) -> None:
    store, problem = load_watermarks(cache)
    if problem is not None:
        print(f"Cache unreadable: {problem}")
    print(f"Cache: {cache}")
    print(f"Telegram: {'configured' if cfg.telegram_token and cfg.telegram_channel else 'not configured'}")
    print(f"VK sources: {len(cfg.vk)}")
    for account in cfg.vk:
        mark = store.get(account.id)
        label = f" ({account.name})" if account.name else ""
        print(f"  - {account.id}{label}: {mark if mark is not None else 'no watermark'}")

    # Sources configured by domain are stored under the numeric group id.
    configured = {str(account.id) for account in cfg.vk}
    others = {key: mark for key, mark in store.as_dict().items() if key not in configured}
    if others:
        print("Other watermarks (by group id):")
        for key, mark in sorted(others.items()):
            print(f"  - {key}: {mark}")


def cmd_log(cfg: RelayConfig, failures_only: bool) -> None:
    if not cfg.delivery_log_path:
        print("No delivery_log_path configured.", file=sys.stderr)
        sys.exit(1)
    log = DeliveryLog(Path(cfg.delivery_log_path))
    records = log.get_failures() if failures_only else log.all_records
    print(f"{'Failures' if failures_only else 'All records'}: {len(records)}")
    for r in records:
        print(f"  [{r.status}] {r.source_id} / {r.post_id}: {r.message_id or r.error or r.permalink}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="feed-relay", description="Relay social feeds to a channel")
    parser.add_argument("--config", type=Path, default=Path(".feed-relay.yml"), help="Config YAML file")
    parser.add_argument("--cache", type=Path, default=None, help="Watermark cache file")
    sub = parser.add_subparsers(dest="command")

    run_p = sub.add_parser("run", help="Fetch new posts and deliver them")
    run_p.add_argument("--populate", action="store_true",
                       help="Populate the cache without posting")

    sub.add_parser("status", help="Show sources and their watermarks")

    log_p = sub.add_parser("log", help="View delivery log")
    log_p.add_argument("--failures", action="store_true")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        sys.exit(1)

    cache = args.cache or Path(cfg.cache_path)

    if args.command == "run":
        try:
            validate_for_run(cfg, populate=args.populate)
        except ConfigError as exc:
            print(f"Invalid config: {exc}", file=sys.stderr)
            sys.exit(1)
        configure_logging(cfg)
        cmd_run(cfg, cache, args.populate)
    elif args.command == "status":
        cmd_status(cfg, cache)
    elif args.command == "log":
        cmd_log(cfg, args.failures)


if __name__ == "__main__":
    main()
