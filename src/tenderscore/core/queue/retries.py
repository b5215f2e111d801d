"""
Retry utilities with tenacity.

Short transient storage failures on a single round-trip (a locked
SQLite file, a dropped connection) are retried in-process before the
error reaches the job error handler.
"""

from __future__ import annotations

import copy
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import OperationalError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT = 0.1  # seconds
DEFAULT_MAX_WAIT = 2  # seconds
DEFAULT_MULTIPLIER = 0.2


class RetryConfig:
    """Configuration for retry behavior."""
    
    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_wait: float = DEFAULT_MIN_WAIT,
        max_wait: float = DEFAULT_MAX_WAIT,
        multiplier: float = DEFAULT_MULTIPLIER,
        jitter: bool = True,
        retry_exceptions: tuple[type[Exception], ...] | None = None,
    ):
        """Initialize retry configuration.
        
        Args:
            max_attempts: Maximum number of attempts
            min_wait: Minimum wait time in seconds
            max_wait: Maximum wait time in seconds
            multiplier: Exponential backoff multiplier
            jitter: Add random jitter to wait times
            retry_exceptions: Exception types to retry on
        """
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.multiplier = multiplier
        self.jitter = jitter
        self.retry_exceptions = retry_exceptions or (OperationalError,)
    
    def wait_strategy(self):
        if self.jitter:
            return wait_random_exponential(
                multiplier=self.multiplier,
                min=self.min_wait,
                max=self.max_wait,
            )
        return wait_exponential(
            multiplier=self.multiplier,
            min=self.min_wait,
            max=self.max_wait,
        )


def with_retry(
    func: Callable[..., T] | None = None,
    *,
    config: RetryConfig | None = None,
    max_attempts: int | None = None,
    retry_on: tuple[type[Exception], ...] | None = None,
) -> Callable[..., T]:
    """Decorator retrying a storage call on transient errors.
    
    Can be used with or without arguments:
    
        @with_retry
        def claim(): ...
        
        @with_retry(max_attempts=5)
        def claim(): ...
    """
    config = copy.copy(config) if config is not None else RetryConfig()
    if max_attempts is not None:
        config.max_attempts = max_attempts
    if retry_on is not None:
        config.retry_exceptions = retry_on
    
    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in Retrying(
                stop=stop_after_attempt(config.max_attempts),
                wait=config.wait_strategy(),
                retry=retry_if_exception_type(config.retry_exceptions),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    return fn(*args, **kwargs)
        
        return wrapper
    
    if func is not None:
        return decorator(func)
    return decorator
