# =============================================================================
# demonlist_core/errors/handlers.py
# Error Handling Utilities for the Demon List storage core
# =============================================================================

from __future__ import annotations
import functools
import logging
import traceback
from typing import Optional, Callable, TypeVar, Any

from demonlist_core.logging import get_logger
from .exceptions import DemonListError, DomainValidationError

logger = get_logger(__name__)

T = TypeVar("T")


def handle_error(
    error: Exception,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> str:
    """
    Centralized error handling function.

    Domain validation errors are expected outcomes of user actions and are
    logged at INFO; everything else is logged as an error with traceback.

    Args:
        error: The exception to handle
        log_error: Whether to log the error
        user_message: Custom message to return (uses error message if None)

    Returns:
        The message presentation code should show to the user
    """
    if isinstance(error, DemonListError):
        message = user_message or error.message
        context = error.to_dict()
        recoverable = error.recoverable
    else:
        message = user_message or str(error)
        context = {
            "error_type": error.__class__.__name__,
            "code": "UNKNOWN",
            "message": str(error),
            "traceback": traceback.format_exc(),
        }
        recoverable = True
    code = context["code"]

    if log_error:
        if isinstance(error, DomainValidationError):
            logger.info(f"[{code}] {message}", extra={"error": context})
        else:
            logger.error(
                f"[{code}] {message}",
                extra={"error": context},
                exc_info=True,
            )

    if not recoverable:
        return f"Critical Error: {message}. Please contact support."
    return message


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    reraise: bool = False,
    **kwargs,
) -> Optional[T]:
    """
    Execute a function with automatic error handling.

    Args:
        func: Function to execute
        *args: Positional arguments to pass to func
        default: Default value to return on error
        error_message: Custom error message to log
        reraise: Whether to reraise the exception after handling
        **kwargs: Keyword arguments to pass to func

    Returns:
        Function result or default value on error

    Usage:
        users = safe_execute(client.fetch_all, "users", default=[])
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, user_message=error_message)
        if reraise:
            raise
        return default


def error_boundary(
    default_return: Any = None,
    error_message: Optional[str] = None,
    level: int = logging.WARNING,
):
    """
    Decorator to wrap functions with error handling.

    Args:
        default_return: Value to return if function fails
        error_message: Prefix for the logged message
        level: Logging level used for the failure

    Usage:
        @error_boundary(default_return=False, error_message="Push failed")
        def push(...):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                prefix = error_message or f"Error in {func.__name__}"
                logger.log(level, f"{prefix}: {e}")
                return default_return

        return wrapper

    return decorator
