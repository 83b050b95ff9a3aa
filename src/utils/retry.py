"""Bounded retry for tag operations."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type


@dataclass
class RetryOutcome:
    """Result of a retried operation: a value or the last error."""
    value: Any = None
    error: Optional[Exception] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def retry(operation: Callable[[], Any],
          attempts: int = 3,
          settle: float = 0.0,
          backoff: float = 0.0,
          retry_on: Tuple[Type[Exception], ...] = (Exception,),
          sleep: Callable[[float], None] = time.sleep,
          label: str = "Operation") -> RetryOutcome:
    """Run ``operation`` up to ``attempts`` times.

    Waits ``settle`` seconds before every attempt and ``backoff`` seconds
    after each failed attempt except the last. Errors outside ``retry_on``
    propagate immediately.
    """
    outcome = RetryOutcome()

    for attempt in range(1, attempts + 1):
        outcome.attempts = attempt
        logging.debug(f"{label} attempt {attempt}/{attempts}")
        if settle:
            sleep(settle)

        try:
            outcome.value = operation()
            outcome.error = None
            return outcome
        except retry_on as e:
            logging.debug(f"{label} attempt {attempt} failed: {e}")
            outcome.error = e

        if attempt < attempts and backoff:
            sleep(backoff)

    return outcome
