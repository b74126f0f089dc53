"""
Custom exceptions for the alphdata package.

This module defines the error taxonomy shared by sources, caches and
services. Every error carries a machine-readable code and a context dict so
it can be logged or serialized consistently.
"""

import asyncio
from typing import Optional, Any, Dict


class AlphDataError(Exception):
    """
    Base exception for all alphdata errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        context: Additional context information
    """

    def __init__(self,
                 message: str,
                 error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None
        }

# Configuration Related Errors

class ConfigurationError(AlphDataError):
    """Raised when there's an issue with configuration."""
    pass

# Input Errors

class ValidationError(AlphDataError):
    """Raised when caller input is malformed. Fatal to the single call."""
    pass

class InvalidAddressError(ValidationError):
    """Raised when an address fails length or alphabet checks."""

    def __init__(self, address: str, reason: str):
        super().__init__(
            message=f"Invalid address format - {reason}",
            context={"address": address, "reason": reason}
        )

# Upstream Errors

class UpstreamUnavailableError(AlphDataError):
    """Raised when a remote endpoint cannot be reached or answers with an error."""

    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None,
                 url: Optional[str] = None,
                 cause: Optional[Exception] = None):
        super().__init__(
            message=message,
            context={"status_code": status_code, "url": url},
            cause=cause
        )
        self.status_code = status_code
        self.url = url

class CorsRestrictedError(UpstreamUnavailableError):
    """Raised when a metadata host refuses to serve content to this origin."""
    pass

class NotFoundError(AlphDataError):
    """Raised when the upstream authoritatively reports a resource as absent."""

    def __init__(self, resource: str, identifier: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"{resource} '{identifier}' not found",
            context={"resource": resource, "identifier": identifier},
            cause=cause
        )

class ParseError(AlphDataError):
    """Raised when an upstream payload does not have the expected shape."""

    def __init__(self, what: str, detail: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"Malformed {what}: {detail}",
            context={"payload": what},
            cause=cause
        )

# Local Errors

class StorageError(AlphDataError):
    """Raised when the persistent key-value tier fails to read or write."""
    pass

class HistoryUnavailableError(AlphDataError):
    """Raised when every balance history tier has been exhausted."""

    def __init__(self, address: str, days: int, cause: Optional[Exception] = None):
        super().__init__(
            message=f"No balance history available for {address[:8]}... ({days} days)",
            context={"address": address, "days": days},
            cause=cause
        )

# Utility functions for error handling

def handle_exception(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None
) -> AlphDataError:
    """
    Convert a generic exception to an appropriate AlphDataError.

    Args:
        exception: The original exception
        context: Additional context information

    Returns:
        Appropriate AlphDataError subclass
    """
    context = context or {}

    # If it's already an AlphDataError, add context and return
    if isinstance(exception, AlphDataError):
        exception.context.update(context)
        return exception

    if isinstance(exception, (TimeoutError, asyncio.TimeoutError)):
        error = UpstreamUnavailableError(f"Request timed out: {exception}", cause=exception)
    elif isinstance(exception, (ConnectionError, OSError)):
        error = UpstreamUnavailableError(f"Connection/resource error: {exception}", cause=exception)
    elif isinstance(exception, (ValueError, TypeError, KeyError, OverflowError)):
        error = ParseError("value", str(exception), cause=exception)
    else:
        error = AlphDataError(
            message=f"Unexpected error: {exception}",
            error_code="UNEXPECTED_ERROR",
            cause=exception
        )

    error.context.update(context)
    return error
