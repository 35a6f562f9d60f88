"""Sequential delivery of filtered posts to the channel.

Each post runs through a small state machine:
  PENDING   → deliver() is called
  DELIVERED → the channel confirmed the post; watermark advanced
  SKIPPED   → delivery failed; watermark untouched so the post is
              retried on the next run

A rate-limited first attempt waits for the advertised window and tries
exactly once more. Populate mode never calls the adapter and advances
the watermark for every post.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from feed_relay.errors import RateLimited
from feed_relay.retry import SleepFunc, retry_on_rate_limit

if TYPE_CHECKING:
    from feed_relay.delivery_log import DeliveryLog
    from feed_relay.ports import DeliveryAdapter, DeliveryReceipt
    from feed_relay.post import NormalizedPost
    from feed_relay.watermark import WatermarkStore

LOGGER = logging.getLogger(__name__)


class DeliveryStatus(Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    SKIPPED = "skipped"


@dataclass
class DeliveryResult:
    post: NormalizedPost
    status: DeliveryStatus = DeliveryStatus.PENDING
    receipt: DeliveryReceipt | None = None
    error: str | None = None
    attempts: int = 0
    waited: float = 0.0
    populated: bool = False

    def mark_delivered(self, receipt: DeliveryReceipt | None) -> None:
        self.status = DeliveryStatus.DELIVERED
        self.receipt = receipt

    def mark_skipped(self, error: str) -> None:
        self.status = DeliveryStatus.SKIPPED
        self.error = error


class DeliveryOrchestrator:
    """Delivers posts one at a time and advances watermarks on success.

    The orchestrator mutates the store it is given; the caller owns it
    and decides when to persist. Delivery-log records are buffered and
    written once at the end of deliver_all.
    """

    def __init__(
        self,
        adapter: DeliveryAdapter | None,
        store: WatermarkStore,
        delivery_log: DeliveryLog | None = None,
        sleep_func: SleepFunc | None = None,
    ) -> None:
        self._adapter = adapter
        self._store = store
        self._delivery_log = delivery_log
        self._sleep = sleep_func

    async def deliver(self, post: NormalizedPost) -> DeliveryResult:
        """Deliver a single post, retrying once on rate limit."""
        result = DeliveryResult(post=post)
        if self._adapter is None:
            result.mark_skipped("No delivery adapter configured")
            self._log_delivery(result)
            return result

        outcome = await retry_on_rate_limit(
            self._adapter.deliver, post, sleep_func=self._sleep,
        )
        result.attempts = outcome.attempts
        result.waited = outcome.waited

        if outcome.ok:
            self._store.advance(post.source_id, post.id)
            result.mark_delivered(outcome.value)
            LOGGER.info("Delivered post %s from %s", post.id, post.source_id)
        else:
            error = outcome.error
            if isinstance(error, RateLimited) and outcome.attempts > 1:
                message = f"Still rate limited after retry: {error}"
            else:
                message = str(error) or type(error).__name__
            result.mark_skipped(message)
            LOGGER.error("Failed to deliver post %s from %s: %s", post.id, post.source_id, message)

        self._log_delivery(result)
        return result

    def populate(self, post: NormalizedPost) -> DeliveryResult:
        """Record the post as delivered without sending it."""
        result = DeliveryResult(post=post, populated=True)
        self._store.advance(post.source_id, post.id)
        result.mark_delivered(None)
        LOGGER.debug("Populated watermark with post %s from %s", post.id, post.source_id)
        self._log_delivery(result)
        return result

    async def deliver_all(
        self, posts: Iterable[NormalizedPost], populate: bool = False,
    ) -> list[DeliveryResult]:
        """Process posts strictly in the given order, one at a time."""
        results: list[DeliveryResult] = []
        for post in posts:
            if populate:
                results.append(self.populate(post))
            else:
                results.append(await self.deliver(post))
        await self.flush_log()
        return results

    async def flush_log(self) -> None:
        """Write buffered delivery records to disk off the event loop."""
        if self._delivery_log:
            await asyncio.to_thread(self._delivery_log.save)

    def _log_delivery(self, result: DeliveryResult) -> None:
        if not self._delivery_log:
            return
        from feed_relay.delivery_log import DeliveryRecord

        if result.populated:
            status = "populated"
        else:
            status = result.status.value
        post = result.post
        self._delivery_log.append(DeliveryRecord(
            record_id=f"{post.source_id}-{post.id}",
            post_id=str(post.id),
            source_id=str(post.source_id),
            status=status,
            permalink=post.permalink,
            message_id=result.receipt.message_id if result.receipt else "",
            error=result.error or "",
            attempts=result.attempts,
        ), save=False)
