"""
Chirper - Social Feed Data Access
=================================

Async data-access layer for users, posts, retweets and likes.

Main Components:
- Database: SQLite via aiosqlite with connection pooling and schema management
- Storage: repositories for users, posts and engagement, plus timeline merging
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__description__ = "Async data-access layer for a social feed"

from .config.settings import get_settings
from .database.connection import DatabaseConnection, get_db_manager
from .database.schema import DatabaseSchema
from .storage import EngagementRepository, PostRepository, UserRepository
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import (
    ChirperError,
    ConstraintViolation,
    NotFoundError,
    StorageUnavailable,
)

__all__ = [
    "get_settings",
    "DatabaseConnection",
    "get_db_manager",
    "DatabaseSchema",
    "EngagementRepository",
    "PostRepository",
    "UserRepository",
    "configure_application_logging",
    "get_logger_for_component",
    "ChirperError",
    "ConstraintViolation",
    "NotFoundError",
    "StorageUnavailable",
]
