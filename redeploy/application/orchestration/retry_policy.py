"""
Retry Policy

Architectural Intent:
- Wraps a boolean-returning async operation with bounded attempts and a
  fixed delay between them
- An exception counts as a failed attempt, including on the last attempt
- Cancellation is never retried: it propagates at once, and the delay
  between attempts is interruptible
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from redeploy.domain.cancellation import CancellationToken
from redeploy.domain.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay_seconds: float = 10

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")

    async def execute(
        self,
        operation: Callable[[], Awaitable[bool]],
        operation_name: str = "operation",
        cancellation: Optional[CancellationToken] = None,
    ) -> bool:
        cancellation = cancellation or CancellationToken()

        for attempt in range(1, self.max_attempts + 1):
            cancellation.raise_if_cancelled()
            logger.info(
                "Attempting %s (attempt %d/%d)",
                operation_name, attempt, self.max_attempts,
            )
            try:
                if await operation():
                    return True
                logger.warning("%s attempt %d returned failure", operation_name, attempt)
            except OperationCancelledError:
                raise
            except Exception as e:
                logger.error("%s attempt %d failed: %s", operation_name, attempt, e)

            if attempt < self.max_attempts:
                logger.warning(
                    "%s failed, retrying in %ss...", operation_name, self.delay_seconds
                )
                await cancellation.sleep(self.delay_seconds)

        return False
