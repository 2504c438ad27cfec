import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from deception_mirror.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Raised by :func:`with_retry` once every attempt has failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def linear_backoff(base_seconds: float) -> Callable[[int], float]:
    """Delay after failed attempt ``n`` (1-based) is ``n * base_seconds``."""
    def _delay(attempt_number: int) -> float:
        return base_seconds * attempt_number
    return _delay


async def with_retry(
    attempt: Callable[[], Awaitable[T]],
    max_attempts: int,
    backoff: Callable[[int], float],
    label: str = "call",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """Await ``attempt()`` up to ``max_attempts`` times, sleeping ``backoff(n)`` between tries.

    There is no sleep after the final failure.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    sleep = sleep or asyncio.sleep

    last_error: Optional[BaseException] = None
    for attempt_number in range(1, max_attempts + 1):
        try:
            return await attempt()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            last_error = exc
            logger.warning("%s attempt %d/%d failed: %s", label, attempt_number, max_attempts, exc)
            if attempt_number < max_attempts:
                await sleep(backoff(attempt_number))

    assert last_error is not None
    raise RetryExhausted(max_attempts, last_error)
