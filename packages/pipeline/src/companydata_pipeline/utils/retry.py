"""
utils/retry.py — Exponential-backoff retry decorator for network calls.

Uses tenacity under the hood and logs every retried attempt with structlog.
Import-time failures (decode errors, store errors) are never retried; this
is only for the transient download step.

Usage:
    from companydata_pipeline.utils.retry import with_retry_sync

    @with_retry_sync(max_attempts=3, base_delay=1.0, retry_on=httpx.TransportError)
    def fetch(url: str) -> bytes:
        return httpx.get(url).raise_for_status().content
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def with_retry_sync(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retry_on: type[Exception] | tuple[type[Exception], ...] = Exception,
) -> Callable[[F], F]:
    """
    Decorator that retries a function with exponential backoff.

    Delays: base_delay * 2^(attempt-1), capped at max_delay. The last
    exception is re-raised unchanged once attempts run out.

    Args:
        max_attempts: Total attempts before raising.
        base_delay:   Initial delay in seconds.
        max_delay:    Maximum delay cap in seconds.
        retry_on:     Exception type(s) that trigger a retry.

    Returns:
        Decorated function.
    """

    def decorator(fn: F) -> F:
        attempt_log = log.bind(function=fn.__qualname__)

        def before_sleep(state: RetryCallState) -> None:
            attempt_log.warning(
                "retry_attempt",
                attempt=state.attempt_number,
                max_attempts=max_attempts,
                delay_s=state.next_action.sleep if state.next_action else None,
                error=str(state.outcome.exception()) if state.outcome else None,
            )

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            retrying = Retrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=base_delay, max=max_delay),
                retry=retry_if_exception_type(retry_on),
                before_sleep=before_sleep,
                reraise=True,
            )
            try:
                return retrying(fn, *args, **kwargs)
            except retry_on as exc:
                attempt_log.error("retry_exhausted", max_attempts=max_attempts, error=str(exc))
                raise

        return wrapper  # type: ignore[return-value]

    return decorator
