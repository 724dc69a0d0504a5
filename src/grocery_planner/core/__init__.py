"""
Core module initialization.
"""

from .retry_utils import (
    retry_with_backoff,
    retry_with_backoff_async,
    RetryConfig,
    APIResponseValidator,
    APIError,
    TransientError,
    QueryError,
    PermanentError,
    NotFoundError,
    ConfigurationError,
    RetryCancelled,
)

from .db import get_db_connection, init_database, import_csv_data
from .geo import calculate_distance, distance_between, geocode_address
from .storage import LocalStorage

__all__ = [
    # Retry and errors
    "retry_with_backoff",
    "retry_with_backoff_async",
    "RetryConfig",
    "APIResponseValidator",
    "APIError",
    "TransientError",
    "QueryError",
    "PermanentError",
    "NotFoundError",
    "ConfigurationError",
    "RetryCancelled",
    # Database
    "get_db_connection",
    "init_database",
    "import_csv_data",
    # Geography
    "calculate_distance",
    "distance_between",
    "geocode_address",
    # Storage
    "LocalStorage",
]
