"""Dedup and ordering of candidate posts against the watermark store."""

from __future__ import annotations

from typing import Iterable

from feed_relay.post import NormalizedPost
from feed_relay.watermark import WatermarkStore


def is_unseen(post: NormalizedPost, store: WatermarkStore) -> bool:
    watermark = store.get(post.source_id)
    if watermark is None:
        return True
    post_id = post.id.coerce()
    # Ids that are not numeric cannot be compared, so they are never skipped.
    if post_id is None:
        return True
    return post_id > watermark


def select_unseen(posts: Iterable[NormalizedPost], store: WatermarkStore) -> list[NormalizedPost]:
    """Return deliverable posts oldest-first.

    Feeds arrive newest-first; the kept posts are reversed so that
    watermarks advance in increasing id order during delivery.
    Text-only posts are not a supported delivery shape and are dropped.
    """
    kept = [p for p in posts if p.media and is_unseen(p, store)]
    kept.reverse()
    return kept
