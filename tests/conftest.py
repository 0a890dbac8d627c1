"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for Chirper tests.

Every test gets its own SQLite file under pytest's tmp_path, with the
schema already created and an initialized connection pool on top.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["CHIRPER_DATABASE__PATH"] = str(
    Path(tempfile.gettempdir()) / "chirper_tests" / "chirper.db"
)
os.environ["CHIRPER_LOGGING__FILE_PATH"] = ""
os.environ["CHIRPER_DEBUG"] = "true"

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(seconds: int) -> datetime:
    """Fixed point in time, ``seconds`` after the test epoch."""
    return EPOCH + timedelta(seconds=seconds)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_db_path(tmp_path):
    """Path to a fresh database with the schema created."""
    from chirper.database.schema import DatabaseSchema

    db_path = tmp_path / "chirper_test.db"
    DatabaseSchema(str(db_path)).create_tables()
    return str(db_path)


@pytest_asyncio.fixture
async def db_connection(test_db_path):
    """Initialized connection pool over the test database."""
    from chirper.database.connection import DatabaseConnection

    connection = DatabaseConnection(test_db_path, pool_size=2)
    await connection.initialize()
    yield connection

    await connection.close_all_connections()


@pytest.fixture
def user_repo(db_connection):
    from chirper.storage.user_repository import UserRepository

    return UserRepository(db_connection)


@pytest.fixture
def post_repo(db_connection):
    from chirper.storage.post_repository import PostRepository

    return PostRepository(db_connection)


@pytest.fixture
def engagement_repo(db_connection):
    from chirper.storage.engagement_repository import EngagementRepository

    return EngagementRepository(db_connection)


@pytest_asyncio.fixture
async def alice(user_repo):
    """A registered user."""
    return await user_repo.create_user(
        "alice", "alice@example.com", "hashed-alice", created_at=at(0)
    )


@pytest_asyncio.fixture
async def bob(user_repo):
    """A second registered user."""
    return await user_repo.create_user(
        "bob", "bob@example.com", "hashed-bob", created_at=at(1)
    )
