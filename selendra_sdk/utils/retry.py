"""
Async retry helper with exponential backoff and jitter, used by the backend
clients for transport-level failures. The unified core itself never retries.

Jitter strategies (AWS Architecture Blog):
- full : sleep U(0, cap)
- equal: sleep cap/2 + U(0, cap/2)

Example
-------
from selendra_sdk.utils.retry import aretry_call

result = await aretry_call(fetch, retries=3, base=0.25, exceptions=(httpx.TransportError,))
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import (Any, Awaitable, Callable, Literal, Optional, Sequence,
                    Tuple, Type, TypeVar, Union)

__all__ = [
    "RetryError",
    "backoff_delay",
    "aretry_call",
]

T = TypeVar("T")

JitterMode = Literal["full", "equal"]


class RetryError(RuntimeError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, last_exception: BaseException, attempts: int) -> None:
        super().__init__(f"exhausted after {attempts} attempts: {last_exception!r}")
        self.last_exception = last_exception
        self.attempts = attempts


def backoff_delay(attempt: int, *, base: float, max_delay: float, jitter: JitterMode = "full") -> float:
    """
    Compute a backoff delay (in seconds) for the given attempt (1-based).
    """
    if attempt < 1:
        attempt = 1
    cap = min(base * (2 ** (attempt - 1)), max_delay)
    if jitter == "full":
        delay = random.uniform(0.0, cap)
    elif jitter == "equal":
        delay = (cap * 0.5) + random.uniform(0.0, cap * 0.5)
    else:
        raise ValueError(f"unknown jitter mode: {jitter}")
    return max(0.0, float(delay))


async def aretry_call(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    retries: int = 3,
    base: float = 0.25,
    max_delay: float = 3.0,
    jitter: JitterMode = "full",
    exceptions: Union[Type[BaseException], Sequence[Type[BaseException]]] = Exception,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    total_timeout: Optional[float] = None,
    **kwargs: Any,
) -> T:
    """
    Await `fn(*args, **kwargs)`; on an exception matching `exceptions`, sleep
    with backoff and try again, up to `retries` extra attempts.

    `on_retry` receives (attempt_index, exception, sleep_seconds).
    Cancellation is never retried.
    """
    if isinstance(exceptions, type):
        exc_types: Tuple[Type[BaseException], ...] = (exceptions,)
    else:
        exc_types = tuple(exceptions)

    deadline = time.monotonic() + total_timeout if total_timeout is not None else None

    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except exc_types as exc:
            if attempt > retries:
                raise RetryError(exc, attempts=attempt) from exc

            sleep_s = backoff_delay(attempt, base=base, max_delay=max_delay, jitter=jitter)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RetryError(exc, attempts=attempt) from exc
                sleep_s = min(sleep_s, remaining)

            if on_retry is not None:
                on_retry(attempt, exc, sleep_s)

            await asyncio.sleep(sleep_s)
