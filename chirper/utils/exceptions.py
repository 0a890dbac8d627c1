"""
Chirper Custom Exceptions
=========================

Exception hierarchy for the Chirper data-access layer with error codes,
context information, and user-friendly error messages.

Storage failures are reported with one of three concrete types:

- NotFoundError: the target row of an update or delete does not exist
- ConstraintViolation: a unique or foreign-key constraint rejected a write
- StorageUnavailable: the database could not be reached or opened

Lookups never raise NotFoundError; they return None instead.
"""

import sqlite3
from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Resource errors (R001-R099)
    DUPLICATE_RESOURCE = "R001"
    RESOURCE_NOT_FOUND = "R002"
    RESOURCE_EXHAUSTED = "R003"


class ChirperError(Exception):
    """Base exception for all Chirper errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize Chirper error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(ChirperError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for ChirperError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message"]
            },
        )


class DatabaseError(ChirperError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for ChirperError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_ERROR),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", False),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


class NotFoundError(DatabaseError):
    """Update or delete target does not exist."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        entity_id: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if entity:
            context["entity"] = entity
        if entity_id is not None:
            context["entity_id"] = entity_id

        super().__init__(
            message,
            context=context,
            error_code=kwargs.pop("error_code", ErrorCode.RESOURCE_NOT_FOUND),
            user_message=kwargs.pop(
                "user_message", f"{(entity or 'Record').capitalize()} not found"
            ),
            **kwargs,
        )


class ConstraintViolation(DatabaseError):
    """Unique or foreign-key constraint rejected a write."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", ErrorCode.DATABASE_CONSTRAINT),
            user_message=kwargs.pop(
                "user_message", "The change conflicts with existing data"
            ),
            **kwargs,
        )


class StorageUnavailable(DatabaseError):
    """Database could not be reached or opened."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            error_code=kwargs.pop("error_code", ErrorCode.DATABASE_CONNECTION),
            user_message=kwargs.pop("user_message", "Database is unavailable"),
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


# OperationalError messages that mean the database itself cannot be reached,
# as opposed to a bad statement or a missing table
_UNAVAILABLE_MARKERS = (
    "database is locked",
    "database table is locked",
    "unable to open",
    "disk i/o error",
    "database or disk is full",
    "readonly database",
)


def is_storage_unavailable(exception: Exception) -> bool:
    """Check whether a driver error is a connection-level failure."""
    if not isinstance(exception, sqlite3.OperationalError):
        return False
    message = str(exception).lower()
    return any(marker in message for marker in _UNAVAILABLE_MARKERS)


def translate_storage_error(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> ChirperError:
    """Convert a driver exception into the Chirper storage taxonomy.

    Args:
        exception: Original exception raised by the database driver
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        Chirper exception; the caller is expected to raise it ``from`` the
        original exception
    """
    context = dict(context or {})
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, ChirperError):
        error = exception

    elif isinstance(exception, sqlite3.IntegrityError):
        error = ConstraintViolation(
            f"Constraint violated during {operation}: {exception}",
            context=context,
        )

    elif is_storage_unavailable(exception):
        error = StorageUnavailable(
            f"Storage unavailable during {operation}: {exception}",
            context=context,
        )

    else:
        error = DatabaseError(
            f"Unexpected database error during {operation}: {exception}",
            context=context,
        )

    logger.error(f"Operation '{operation}' failed: {error}")
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception.

    Args:
        exception: Exception to get message for

    Returns:
        User-friendly error message
    """
    if isinstance(exception, ChirperError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
