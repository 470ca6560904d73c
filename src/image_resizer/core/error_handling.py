# src/image_resizer/core/error_handling.py

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]


async def call_with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int,
    is_retryable: RetryPredicate,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    name: str = "operation",
    logger: Optional[logging.Logger] = None,
) -> T:
    """
    Await ``operation`` and retry it with exponential backoff.

    Only exceptions accepted by ``is_retryable`` are retried; anything else,
    and the last retryable failure once ``retries`` is used up, propagates.
    """
    logger = logger or logging.getLogger(__name__)
    attempt = 0
    delay = initial_delay
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt >= retries:
                logger.error(f"'{name}' failed after {attempt + 1} attempt(s): {e}")
                raise
            attempt += 1
            logger.info(
                f"'{name}' failed. Retry {attempt}/{retries} in {delay:.2f}s. Error: {e}"
            )
            await asyncio.sleep(delay)
            delay *= backoff_factor


def retry_async(
    retries: int = 2,
    is_retryable: RetryPredicate = lambda e: True,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
):
    """
    Decorator to retry a coroutine function with exponential backoff.
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await call_with_retries(
                lambda: func(*args, **kwargs),
                retries=retries,
                is_retryable=is_retryable,
                initial_delay=initial_delay,
                backoff_factor=backoff_factor,
                name=func.__name__,
                logger=logging.getLogger(func.__module__ + "." + func.__name__),
            )
        return wrapper
    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """
    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        elif self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i+1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")
        # Never suppress exceptions.
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): A string identifying the item that failed.
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}")
