"""Single wait-and-retry for rate-limited delivery calls.

The channel's retry-after window is authoritative, so a rate-limited
call is retried exactly once after sleeping for that window. Any second
failure is returned to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from feed_relay.errors import RateLimited

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass
class RetryOutcome:
    """Result of retry_on_rate_limit: attempt count plus value or error."""
    attempts: int = 0
    value: Any = None
    error: Exception | None = None
    waited: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


async def retry_on_rate_limit(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    sleep_func: SleepFunc | None = None,
    **kwargs: Any,
) -> RetryOutcome:
    """Await func, retrying once after a RateLimited wait.

    Args:
        func: Coroutine function to call.
        *args, **kwargs: Passed to func.
        sleep_func: Async sleep (injectable for testing). Defaults to asyncio.sleep.

    Returns:
        A RetryOutcome. Exceptions from func are captured, not raised.
    """
    do_sleep = sleep_func or asyncio.sleep
    outcome = RetryOutcome()

    for attempt in (1, 2):
        outcome.attempts = attempt
        try:
            outcome.value = await func(*args, **kwargs)
            outcome.error = None
            return outcome
        except RateLimited as exc:
            outcome.error = exc
            if attempt == 2:
                break
            LOGGER.warning("Rate limited, retrying once in %.1fs", exc.retry_after)
            outcome.waited = max(exc.retry_after, 0.0)
            await do_sleep(outcome.waited)
        except Exception as exc:
            outcome.error = exc
            break

    return outcome
