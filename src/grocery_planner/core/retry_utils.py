"""
Retry logic and API error handling.
Bounded retries with fixed or exponential delay, cancellable between attempts.
"""

import asyncio
import logging
import random
import threading
import time
from functools import wraps
from typing import Callable, Any, Optional, TypeVar

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_backoff: float = 1.0,
        backoff_multiplier: float = 2.0,
        max_backoff: float = 32.0,
        jitter: bool = True
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.backoff_multiplier = backoff_multiplier
        self.max_backoff = max_backoff
        self.jitter = jitter

    @classmethod
    def fixed(cls, attempts: int = 3, delay: float = 1.0) -> "RetryConfig":
        """Policy making at most `attempts` calls with a constant delay between them."""
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        return cls(
            max_retries=attempts - 1,
            initial_backoff=delay,
            backoff_multiplier=1.0,
            max_backoff=delay,
            jitter=False
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def get_backoff_time(self, attempt: int) -> float:
        """Calculate backoff time for attempt number."""
        backoff = min(
            self.initial_backoff * (self.backoff_multiplier ** attempt),
            self.max_backoff
        )

        if self.jitter:
            backoff = backoff * (0.5 + random.random())

        return backoff


class APIError(Exception):
    """Base exception for API and backing-store errors."""

    def __init__(self, message: str, source: str, retry_possible: bool = True):
        self.message = message
        self.source = source
        self.retry_possible = retry_possible
        super().__init__(self.message)


class TransientError(APIError):
    """Error that might be transient (temporary)."""
    pass


class QueryError(TransientError):
    """The catalog backend could not answer a query."""
    pass


class PermanentError(APIError):
    """Error that won't be resolved by retrying."""

    def __init__(self, message: str, source: str):
        super().__init__(message, source, retry_possible=False)


class NotFoundError(PermanentError):
    """Requested record does not exist."""
    pass


class ConfigurationError(PermanentError):
    """Credentials or settings required for a request are missing or rejected."""
    pass


class RetryCancelled(Exception):
    """Raised when a retry loop is cancelled while waiting for the next attempt."""
    pass


RETRYABLE_ERRORS = (TransientError, ConnectionError, TimeoutError)


def retry_with_backoff(
    func: Optional[Callable[..., T]] = None,
    config: Optional[RetryConfig] = None,
    error_handler: Optional[Callable[[Exception, int], None]] = None,
    cancel_event: Optional[threading.Event] = None
):
    """
    Retry a function on transient failures.

    Usable as `@retry_with_backoff`, `@retry_with_backoff(config=...)` or
    `retry_with_backoff(func, config)`.

    Args:
        func: Function to retry
        config: Retry configuration
        error_handler: Callback on errors
        cancel_event: When set, stops waiting and raises RetryCancelled

    Returns:
        Wrapped function with retry logic
    """
    if func is None:
        def decorator(inner: Callable[..., T]) -> Callable[..., T]:
            return retry_with_backoff(inner, config, error_handler, cancel_event)
        return decorator

    if config is None:
        config = RetryConfig()

    @wraps(func)
    def wrapper(*args, **kwargs) -> T:
        last_exception = None

        for attempt in range(config.max_attempts):
            if cancel_event is not None and cancel_event.is_set():
                raise RetryCancelled(f"{func.__name__} cancelled before attempt {attempt + 1}")
            try:
                result = func(*args, **kwargs)
                if attempt > 0:
                    logger.info(f"Retry succeeded on attempt {attempt + 1}")
                return result

            except PermanentError as e:
                logger.error(f"Permanent error from {func.__name__}: {e.message}")
                raise

            except RETRYABLE_ERRORS as e:
                last_exception = e

                if attempt < config.max_retries:
                    backoff = config.get_backoff_time(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1} failed: {str(e)}. "
                        f"Retrying in {backoff:.2f} seconds..."
                    )

                    if error_handler:
                        error_handler(e, attempt)

                    if cancel_event is not None:
                        if cancel_event.wait(backoff):
                            raise RetryCancelled(f"{func.__name__} cancelled after attempt {attempt + 1}") from e
                    else:
                        time.sleep(backoff)
                else:
                    logger.error(f"All {config.max_attempts} attempts failed")

        if last_exception:
            raise last_exception

        raise RuntimeError(f"Failed to execute {func.__name__}")

    return wrapper


def retry_with_backoff_async(
    func: Optional[Callable[..., Any]] = None,
    config: Optional[RetryConfig] = None,
    error_handler: Optional[Callable[[Exception, int], None]] = None,
    cancel_event: Optional[asyncio.Event] = None
):
    """
    Async twin of retry_with_backoff. Waiting is done on the event loop and
    ends early when `cancel_event` is set.
    """
    if func is None:
        def decorator(inner: Callable[..., Any]) -> Callable[..., Any]:
            return retry_with_backoff_async(inner, config, error_handler, cancel_event)
        return decorator

    if config is None:
        config = RetryConfig()

    @wraps(func)
    async def wrapper(*args, **kwargs) -> Any:
        last_exception = None

        for attempt in range(config.max_attempts):
            if cancel_event is not None and cancel_event.is_set():
                raise RetryCancelled(f"{func.__name__} cancelled before attempt {attempt + 1}")
            try:
                result = await func(*args, **kwargs)
                if attempt > 0:
                    logger.info(f"Async retry succeeded on attempt {attempt + 1}")
                return result

            except PermanentError as e:
                logger.error(f"Permanent error from {func.__name__}: {e.message}")
                raise

            except RETRYABLE_ERRORS as e:
                last_exception = e

                if attempt < config.max_retries:
                    backoff = config.get_backoff_time(attempt)
                    logger.warning(
                        f"Async attempt {attempt + 1} failed: {str(e)}. "
                        f"Retrying in {backoff:.2f} seconds..."
                    )

                    if error_handler:
                        error_handler(e, attempt)

                    if cancel_event is not None:
                        try:
                            await asyncio.wait_for(cancel_event.wait(), timeout=backoff)
                        except asyncio.TimeoutError:
                            pass
                        else:
                            raise RetryCancelled(
                                f"{func.__name__} cancelled after attempt {attempt + 1}"
                            ) from e
                    else:
                        await asyncio.sleep(backoff)
                else:
                    logger.error(f"All {config.max_attempts} async attempts failed")

        if last_exception:
            raise last_exception

        raise RuntimeError(f"Failed to execute async {func.__name__}")

    return wrapper


class APIResponseValidator:
    """Validates proxy and third-party API responses before using them."""

    @staticmethod
    def validate_products_response(response: Any, source: str) -> bool:
        """
        Validate a product search response: {"products": [...]}.

        Returns:
            True if valid, raises PermanentError otherwise
        """
        if not isinstance(response, dict):
            raise PermanentError(f"Invalid response type: {type(response)}", source)

        if "error" in response:
            raise PermanentError(f"API returned error: {response.get('error')}", source)

        if not isinstance(response.get("products"), list):
            raise PermanentError("Products must be a list", source)

        for product in response["products"]:
            if not isinstance(product, dict) or not product.get("id"):
                raise PermanentError("Invalid product structure", source)

        return True

    @staticmethod
    def validate_stores_response(response: Any, source: str) -> bool:
        """Validate a store sync response: {"stores": [...], "count": n}."""
        if not isinstance(response, dict):
            raise PermanentError(f"Invalid response type: {type(response)}", source)

        if "error" in response:
            raise PermanentError(f"API returned error: {response.get('error')}", source)

        stores = response.get("stores")
        if not isinstance(stores, list):
            raise PermanentError("Stores must be a list", source)

        if "count" in response and response["count"] != len(stores):
            logger.warning(f"[{source}] count {response['count']} does not match {len(stores)} stores")

        for store in stores:
            if not isinstance(store, dict) or not store.get("id"):
                raise PermanentError("Invalid store structure", source)

        return True
