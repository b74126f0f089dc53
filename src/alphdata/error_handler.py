"""
Error handling utilities for the alphdata package.

This module provides consistent error logging with statistics, plus the
Result type used by internal calls that must not raise across a component
boundary but still need to report why they came back empty.
"""

import traceback
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable, TypeVar, Generic
from loguru import logger

from alphdata.exceptions import AlphDataError, handle_exception

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an internal fallible call: a value or an AlphDataError."""
    value: Optional[T] = None
    error: Optional[AlphDataError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[T]":
        return cls(error=handle_exception(error))

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value if self.error is None else default


class ErrorHandler:
    """Central error handler for alphdata components."""

    def __init__(self, enable_detailed_logging: bool = True):
        self.enable_detailed_logging = enable_detailed_logging
        self.error_stats = {
            "total_errors": 0,
            "errors_by_type": {},
            "errors_by_component": {}
        }

    def handle_error(self,
                     error: Exception,
                     component: str = "unknown",
                     context: Optional[Dict[str, Any]] = None,
                     reraise: bool = True,
                     level: str = "ERROR") -> Optional[AlphDataError]:
        """
        Handle an error with consistent logging and statistics tracking.

        Args:
            error: The exception that occurred
            component: Component where error occurred
            context: Additional context
            reraise: Whether to re-raise the error after handling
            level: Log level used for the summary line

        Returns:
            AlphDataError if not re-raising

        Raises:
            AlphDataError: If reraise=True
        """
        converted = handle_exception(error, context=context or {})

        self.error_stats["total_errors"] += 1
        error_type = type(converted).__name__
        self.error_stats["errors_by_type"][error_type] = \
            self.error_stats["errors_by_type"].get(error_type, 0) + 1
        self.error_stats["errors_by_component"][component] = \
            self.error_stats["errors_by_component"].get(component, 0) + 1

        self._log_error(converted, component, level)

        if reraise:
            raise converted
        return converted

    def _log_error(self, error: AlphDataError, component: str, level: str):
        """Log an error with appropriate detail level."""
        logger.log(level, f"[{component}] {error.message}")

        if self.enable_detailed_logging:
            if error.context:
                logger.debug(f"Error context: {error.context}")

            if error.cause:
                logger.debug(f"Original exception: {error.cause}")
                if getattr(error.cause, '__traceback__', None) is not None:
                    for line in traceback.format_exception(
                        type(error.cause), error.cause, error.cause.__traceback__
                    ):
                        logger.debug(line.strip())

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        return {
            "total_errors": self.error_stats["total_errors"],
            "errors_by_type": dict(self.error_stats["errors_by_type"]),
            "errors_by_component": dict(self.error_stats["errors_by_component"]),
        }

# Global error handler instance
_global_error_handler = ErrorHandler()

def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return _global_error_handler

def safe_execute(func: Callable[[], T],
                 default_return: Any = None,
                 log_errors: bool = True,
                 component: str = "safe_execute") -> Any:
    """
    Safely execute a function, returning a default value on error.

    Args:
        func: Function to execute
        default_return: Value to return on error
        log_errors: Whether to log errors
        component: Component name for logging

    Returns:
        Function result or default_return on error
    """
    try:
        return func()
    except Exception as e:
        if log_errors:
            get_error_handler().handle_error(
                error=e,
                component=component,
                reraise=False,
                level="WARNING"
            )
        return default_return
