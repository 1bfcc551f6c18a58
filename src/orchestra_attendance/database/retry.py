from __future__ import annotations

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

import mysql.connector

from ..core.constants import DEFAULT_FETCH_BASE_DELAY, DEFAULT_FETCH_MAX_RETRIES
from ..core.exceptions import DataSourceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (mysql.connector.Error, OSError)


def with_retry(
    fn: Callable[[], T],
    *,
    max_retries: int = DEFAULT_FETCH_MAX_RETRIES,
    base_delay: float = DEFAULT_FETCH_BASE_DELAY,
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_ERRORS,
    sleep: Callable[[float], None] = time.sleep,
    what: str = "query",
) -> T:
    """Run ``fn``, retrying connection failures with exponential backoff.

    Waits ``base_delay * 2**attempt`` seconds between attempts and raises
    DataSourceError once ``max_retries`` attempts have failed.
    """

    attempts = max(int(max_retries), 1)
    last_error: BaseException | None = None
    for attempt in range(attempts):
        try:
            return fn()
        except retry_on as e:
            last_error = e
            logger.warning("%s failed (attempt %d/%d): %s", what, attempt + 1, attempts, e)
            if attempt < attempts - 1:
                sleep(base_delay * (2 ** attempt))

    logger.error("%s failed after %d attempts", what, attempts)
    raise DataSourceError(f"{what} failed after {attempts} attempts") from last_error


class RetryPolicy:
    """Retry settings shared by the MySQL repositories."""

    def __init__(
        self,
        *,
        max_retries: int = DEFAULT_FETCH_MAX_RETRIES,
        base_delay: float = DEFAULT_FETCH_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_retries = int(max_retries)
        self.base_delay = float(base_delay)
        self._sleep = sleep

    def run(self, fn: Callable[[], T], *, what: str = "query") -> T:
        return with_retry(
            fn,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            sleep=self._sleep,
            what=what,
        )
