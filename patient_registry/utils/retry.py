"""Bounded retry with exponential backoff."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_failure(
    max_attempts: int = 3,
    backoff_factor: float = 2,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for retrying a failing call, sleeping ``backoff_factor ** attempt`` between tries"""
    attempts = max(1, max_attempts)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if attempt == attempts - 1:
                        raise

                    sleep_time = backoff_factor ** attempt
                    logger.warning(f"{func.__name__} failed: {e}. Retry {attempt + 1}/{attempts - 1} after {sleep_time}s...")
                    time.sleep(sleep_time)

            raise RuntimeError(f"{func.__name__} failed after {attempts} attempts")
        return wrapper
    return decorator
