"""feed-relay: forward new social feed posts to a messaging channel.

Polls configured sources, keeps a per-source watermark of the newest
delivered post, and delivers unseen posts oldest-first.
"""

__version__ = "0.1.0"

from feed_relay.identifier import Identifier, Ordering
from feed_relay.post import Feed, MediaRef, NormalizedPost, Photo, Video
from feed_relay.watermark import WatermarkStore, load_watermarks, save_watermarks
from feed_relay.filtering import select_unseen
from feed_relay.delivery import DeliveryOrchestrator, DeliveryResult, DeliveryStatus
from feed_relay.runner import RunController, RunMode, RunSummary, run_once
from feed_relay.config import load_config, RelayConfig

__all__ = [
    "Identifier",
    "Ordering",
    "Feed",
    "MediaRef",
    "NormalizedPost",
    "Photo",
    "Video",
    "WatermarkStore",
    "load_watermarks",
    "save_watermarks",
    "select_unseen",
    "DeliveryOrchestrator",
    "DeliveryResult",
    "DeliveryStatus",
    "RunController",
    "RunMode",
    "RunSummary",
    "run_once",
    "load_config",
    "RelayConfig",
]
