"""Interfaces the sync engine expects from source and delivery adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from feed_relay.identifier import Identifier
from feed_relay.post import Feed, NormalizedPost


@dataclass(frozen=True)
class DeliveryReceipt:
    """Confirmation returned by a delivery adapter."""
    message_id: str
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


class SourceAdapter(Protocol):
    """Fetches one source's feed. Raises FetchError on failure."""

    async def fetch(self, source_id: Identifier) -> Feed:
        ...


class DeliveryAdapter(Protocol):
    """Pushes one post to the channel.

    Raises RateLimited when the channel asks to back off, and
    DeliveryError for every other failure.
    """

    async def deliver(self, post: NormalizedPost) -> DeliveryReceipt:
        ...
