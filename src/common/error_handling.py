"""
Centralized error handling for the crawl queue.

Defines the store error taxonomy surfaced to queue callers and the
decorator that translates PyMongo driver errors into it, so the
coordinator and workers never have to import pymongo.errors.

Taxonomy:
- StoreUnavailable: transport/connection failure or timeout (retryable)
- DuplicateKey: insert rejected by a unique index
- WriteConflict: any other failed store operation

Missing ids on update/delete are not errors: those operations are
idempotent no-ops.
"""

import logging
from functools import wraps
from typing import Callable, Optional, TypeVar

from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    ExecutionTimeout,
    PyMongoError,
)

# Type variable for generic return types
T = TypeVar("T")


class StoreError(Exception):
    """Base class for all document store failures."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"[{operation}] {message}")


class StoreUnavailable(StoreError):
    """Store unreachable, connection dropped, or the call timed out."""


class DuplicateKey(StoreError):
    """Insert rejected by a unique index."""


class WriteConflict(StoreError):
    """Store accepted the call but the operation failed."""


def translate_store_error(operation: str, error: Exception) -> StoreError:
    """
    Map a driver exception onto the store error taxonomy.

    Args:
        operation: Operation name used in the message (e.g., "queued_apps.insert_one")
        error: Exception raised by the driver

    Returns:
        StoreError subclass instance (not raised)
    """
    if isinstance(error, StoreError):
        return error
    if isinstance(error, (ConnectionFailure, ExecutionTimeout)):
        return StoreUnavailable(operation, str(error))
    if isinstance(error, DuplicateKeyError):
        return DuplicateKey(operation, str(error))
    return WriteConflict(operation, str(error))


def store_operation(operation_name: str, logger: Optional[logging.Logger] = None):
    """
    Decorator for document store calls with consistent error translation.

    Provides:
    - ERROR logging with the operation name on failure
    - Translation of PyMongo errors into StoreError subclasses
    - Exception chaining so the driver error stays in __cause__

    The wrapped call is never retried here; retry policy belongs to the caller.

    Args:
        operation_name: Human-readable operation name (e.g., "find_one_and_update")
        logger: Logger to use (defaults to the wrapped function's module logger)

    Usage:
        @store_operation("insert_one")
        def insert_one(self, collection, document):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            log = logger or logging.getLogger(func.__module__)
            try:
                return func(*args, **kwargs)
            except StoreError:
                raise
            except PyMongoError as e:
                translated = translate_store_error(operation_name, e)
                log.error(
                    f"[store] [{operation_name}] ✗ {type(translated).__name__}: {e}"
                )
                raise translated from e

        return wrapper

    return decorator

