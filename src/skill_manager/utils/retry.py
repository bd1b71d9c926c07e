"""Bounded timeout and exponential-backoff retry for async operations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from skill_manager.constants import (
    HTTP_INITIAL_BACKOFF_SECONDS,
    HTTP_MAX_BACKOFF_SECONDS,
    HTTP_MAX_RETRIES,
    HTTP_TIMEOUT_SECONDS,
)
from skill_manager.core.exceptions import RetryExhaustedError, SkillManagerError
from skill_manager.core.logging.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from skill_manager.config import HttpSettings

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = HTTP_MAX_RETRIES
    initial_backoff: float = HTTP_INITIAL_BACKOFF_SECONDS
    max_backoff: float = HTTP_MAX_BACKOFF_SECONDS
    timeout: float | None = HTTP_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            initial_backoff=settings.initial_backoff,
            max_backoff=settings.max_backoff,
            timeout=settings.timeout,
        )

    def backoff_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failure (1-based)."""
        return min(self.initial_backoff * (2 ** (attempt - 1)), self.max_backoff)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``policy.max_retries`` attempts are used.

    Each attempt is bounded by ``policy.timeout``. A ``SkillManagerError`` with
    ``retryable=False`` is raised straight through; any other failure is
    retried and, once attempts run out, surfaced as ``RetryExhaustedError``
    chained to the last failure.
    """
    policy = policy or RetryPolicy()
    attempts = max(policy.max_retries, 1)
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            if policy.timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=policy.timeout)
        except SkillManagerError as exc:
            if not exc.retryable:
                raise
            last_error = exc
        except TimeoutError as exc:
            last_error = TimeoutError(f"timed out after {policy.timeout}s")
            last_error.__cause__ = exc
        except Exception as exc:  # noqa: BLE001
            last_error = exc

        if attempt < attempts:
            delay = policy.backoff_for(attempt)
            logger.debug(
                "Retrying operation",
                data={"label": label, "attempt": attempt, "delay": delay, "error": str(last_error)},
            )
            await sleep(delay)

    assert last_error is not None
    raise RetryExhaustedError(label, attempts=attempts, last_error=last_error) from last_error
