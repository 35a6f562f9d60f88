from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class FetchError(RuntimeError):
    """Raised by a source adapter when a feed cannot be fetched or parsed."""


class DeliveryError(RuntimeError):
    """Raised by a delivery adapter when a post could not be delivered."""


class RateLimited(DeliveryError):
    """The channel asked us to wait before sending again."""

    def __init__(self, retry_after: float) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited for {retry_after:g} seconds")


class CacheCorrupt(RuntimeError):
    """The persisted watermark cache could not be read; starting empty."""


class CachePersistError(RuntimeError):
    """The watermark cache could not be written."""
