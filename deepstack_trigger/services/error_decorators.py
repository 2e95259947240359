"""Error handling decorators for the detection trigger service."""

import functools
import time
from typing import Any, Optional, Tuple, Type

from ..logging_config import get_logger

logger = get_logger("error_decorators")


def retry_on_error(max_attempts: int = 3, delay: float = 1.0, backoff_factor: float = 1.0,
                   exceptions: Optional[Tuple[Type[BaseException], ...]] = None):
    """Decorator to retry a function on failure with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts, including the first call
        delay: Initial delay between retries in seconds
        backoff_factor: Factor to increase delay with each retry
        exceptions: Exception types to catch and retry

    Returns:
        Decorated function that re-raises the last exception once all attempts fail
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            exceptions_to_catch = exceptions or (Exception,)
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions_to_catch as e:
                    last_exception = e
                    logger.warning(f"Attempt {attempt}/{max_attempts} failed for {func.__name__}: {e}")

                    if attempt < max_attempts:
                        sleep_time = delay * (backoff_factor ** (attempt - 1))
                        logger.debug(f"Retrying in {sleep_time:.2f} seconds")
                        time.sleep(sleep_time)

            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
            raise last_exception
        return wrapper
    return decorator


def safe_operation(default_return: Any = None, log_exception: bool = True):
    """Decorator that catches and logs every exception.

    Used on background callbacks (watcher events, timers, purge runs) where
    an exception would otherwise kill the thread.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log_exception:
                    logger.error(f"Exception in {func.__name__}: {e}", exc_info=True)
                return default_return
        return wrapper
    return decorator
