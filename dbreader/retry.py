"""Bounded exponential-backoff retry for async operations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from .config import RetryPolicy

LOG = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryEvent:
    """Reported before sleeping ahead of a retry."""

    attempt: int
    max_retries: int
    delay: float
    cause: BaseException


RetryHook = Callable[[RetryEvent], None]


def _log_retry(event: RetryEvent) -> None:
    LOG.warning(
        "Retry %s/%s after %.3fs: %s",
        event.attempt,
        event.max_retries,
        event.delay,
        event.cause,
        extra={"attempt": event.attempt, "delay": event.delay},
    )


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_retry: RetryHook | None = None,
    give_up: Callable[[Exception], bool] | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Await ``operation()`` up to ``policy.max_retries + 1`` times.

    The delay starts at ``min_delay`` and is multiplied by ``backoff_factor``
    after each failure, clamped at ``max_delay``. The last failure is
    re-raised unchanged. Exceptions for which ``give_up`` returns True are
    re-raised immediately without retrying.
    """

    hook = on_retry or _log_retry
    delay = policy.min_delay
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if give_up is not None and give_up(exc):
                raise
            if attempt >= policy.max_retries:
                raise
            attempt += 1
            hook(RetryEvent(attempt=attempt, max_retries=policy.max_retries, delay=delay, cause=exc))
            await sleep(delay)
            delay = min(delay * policy.backoff_factor, policy.max_delay)


__all__ = ["RetryEvent", "RetryHook", "run_with_retry"]
