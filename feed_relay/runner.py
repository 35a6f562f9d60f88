"""Run controller: one full fetch → filter → deliver → persist cycle.

Fetching fans out across all sources concurrently and waits for every
fetch to settle. Delivery then runs strictly sequentially over the
aggregated, filtered list, and the watermark store is persisted exactly
once at the end regardless of individual outcomes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Sequence

from feed_relay.delivery import DeliveryOrchestrator, DeliveryResult, DeliveryStatus
from feed_relay.errors import CachePersistError
from feed_relay.filtering import select_unseen
from feed_relay.identifier import Identifier
from feed_relay.post import Feed, NormalizedPost
from feed_relay.watermark import WatermarkStore, load_watermarks, save_watermarks

if TYPE_CHECKING:
    from feed_relay.delivery_log import DeliveryLog
    from feed_relay.ports import DeliveryAdapter, SourceAdapter
    from feed_relay.retry import SleepFunc

LOGGER = logging.getLogger(__name__)


class RunMode(Enum):
    NORMAL = "normal"
    POPULATE = "populate"


@dataclass
class RunSummary:
    mode: RunMode
    sources: int = 0
    failed_sources: list[str] = field(default_factory=list)
    fetched: int = 0
    eligible: int = 0
    persisted: bool = False
    persist_error: str | None = None
    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results if r.status == DeliveryStatus.DELIVERED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == DeliveryStatus.SKIPPED)

    def describe(self) -> str:
        verb = "populated" if self.mode == RunMode.POPULATE else "delivered"
        text = (
            f"{self.sources} sources ({len(self.failed_sources)} failed), "
            f"{self.fetched} posts fetched, {self.eligible} new, "
            f"{self.delivered} {verb}, {self.skipped} skipped"
        )
        if not self.persisted:
            text += ", watermarks NOT saved"
        return text


PersistFunc = Callable[[WatermarkStore], None]


class RunController:
    """Drives a single synchronization run.

    Args:
        sources: (adapter, source id) pairs, in configured order.
        delivery: Delivery adapter. May be None for populate-only use.
        store: Watermark store owned by this controller for the run.
        persist: Called once with the store after all posts are processed.
        delivery_log: Optional audit log of every delivery outcome.
        sleep_func: Async sleep used for the rate-limit wait.
    """

    def __init__(
        self,
        sources: Sequence[tuple[SourceAdapter, Identifier]],
        delivery: DeliveryAdapter | None,
        store: WatermarkStore,
        persist: PersistFunc | None = None,
        delivery_log: DeliveryLog | None = None,
        sleep_func: SleepFunc | None = None,
    ) -> None:
        self._sources = list(sources)
        self._store = store
        self._persist = persist
        self._orchestrator = DeliveryOrchestrator(
            delivery, store, delivery_log=delivery_log, sleep_func=sleep_func,
        )

    @property
    def store(self) -> WatermarkStore:
        return self._store

    async def _fetch_one(self, adapter: SourceAdapter, source_id: Identifier) -> Feed:
        return await adapter.fetch(source_id)

    async def fetch_all(self) -> tuple[list[Feed], list[str]]:
        """Fetch every source concurrently. Failed sources yield empty feeds."""
        jobs = [self._fetch_one(adapter, source_id) for adapter, source_id in self._sources]
        settled = await asyncio.gather(*jobs, return_exceptions=True)

        feeds: list[Feed] = []
        failed: list[str] = []
        for (_, source_id), result in zip(self._sources, settled):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                LOGGER.error("Failed to fetch posts from %s: %s", source_id, result)
                failed.append(str(source_id))
                feeds.append(Feed.empty(source_id))
            else:
                LOGGER.debug("Fetched %d posts from %s", len(result), source_id)
                feeds.append(result)
        return feeds, failed

    def select(self, feeds: Sequence[Feed]) -> list[NormalizedPost]:
        """Filter each feed on its own and concatenate in source order.

        A post reachable through two configured ids (numeric id and
        domain of the same group) is kept only once.
        """
        posts: list[NormalizedPost] = []
        seen: set[tuple[str, str]] = set()
        for feed in feeds:
            for post in select_unseen(feed, self._store):
                key = (str(post.source_id), str(post.id))
                if key in seen:
                    LOGGER.debug("Dropping duplicate post %s from %s", post.id, post.source_id)
                    continue
                seen.add(key)
                posts.append(post)
        return posts

    def commit(self, summary: RunSummary) -> None:
        if self._persist is None:
            return
        try:
            self._persist(self._store)
            summary.persisted = True
        except CachePersistError as exc:
            LOGGER.error("Failed to write to cache: %s", exc)
            summary.persist_error = str(exc)

    async def run(self, mode: RunMode = RunMode.NORMAL) -> RunSummary:
        summary = RunSummary(mode=mode, sources=len(self._sources))

        feeds, summary.failed_sources = await self.fetch_all()
        summary.fetched = sum(len(f) for f in feeds)

        posts = self.select(feeds)
        summary.eligible = len(posts)
        LOGGER.info("%d new posts across %d sources", len(posts), len(feeds))

        summary.results = await self._orchestrator.deliver_all(
            posts, populate=mode == RunMode.POPULATE,
        )

        self.commit(summary)
        LOGGER.info("Run finished: %s", summary.describe())
        return summary


async def run_once(
    sources: Sequence[tuple[SourceAdapter, Identifier]],
    delivery: DeliveryAdapter | None,
    cache_path: Path,
    mode: RunMode = RunMode.NORMAL,
    delivery_log: DeliveryLog | None = None,
    sleep_func: SleepFunc | None = None,
) -> RunSummary:
    """Load watermarks from cache_path, run, and write them back."""
    store, problem = load_watermarks(cache_path)
    if problem is not None:
        LOGGER.warning("Failed to parse cache file, starting empty: %s", problem)

    controller = RunController(
        sources,
        delivery,
        store,
        persist=lambda s: save_watermarks(s, cache_path),
        delivery_log=delivery_log,
        sleep_func=sleep_func,
    )
    return await controller.run(mode)
