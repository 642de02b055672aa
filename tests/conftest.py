"""Test configuration: point the app at a throwaway SQLite database."""
import os
import tempfile
from datetime import UTC, datetime

# Must be set before anything imports vroom.config
_db_dir = tempfile.mkdtemp(prefix="vroom-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["GEMINI_API_KEY"] = ""

import pytest
import sqlalchemy

from vroom import database as db
from vroom.schema import init_db, metadata
from vroom.security import hash_password

init_db(db.engine)


@pytest.fixture(autouse=True)
def clean_tables():
    """Every test starts from empty tables."""
    with db.engine.begin() as connection:
        for table in reversed(metadata.sorted_tables):
            connection.execute(table.delete())
    yield


@pytest.fixture
def create_user():
    """Factory that inserts a user and returns their id."""
    def _create(email: str = "traveller@vroomapp.com", name: str = "Traveller", password: str = "secret123") -> int:
        now = datetime.now(UTC).isoformat()
        with db.engine.begin() as connection:
            result = connection.execute(
                sqlalchemy.text(
                    """
                    INSERT INTO users (name, email, password, created_at, updated_at)
                    VALUES (:name, :email, :password, :created_at, :updated_at)
                    RETURNING id
                    """
                ),
                {
                    "name": name,
                    "email": email,
                    "password": hash_password(password),
                    "created_at": now,
                    "updated_at": now,
                }
            )
            return result.fetchone()[0]
    return _create
