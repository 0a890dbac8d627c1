"""
Chirper Database Layer
======================

Connection pooling, schema management and the pydantic record models.
"""

from .connection import DatabaseConnection, get_db_manager
from .schema import DatabaseSchema

__all__ = ["DatabaseConnection", "get_db_manager", "DatabaseSchema"]
