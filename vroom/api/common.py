"""Helpers shared by the route modules."""
import json
from datetime import UTC, datetime

import sqlalchemy
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request/response model exchanged with the mobile client in camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_json_field(value, expected_type):
    """Parse JSON field from database, handling both parsed and string forms."""
    if isinstance(value, expected_type):
        return value
    if value is None:
        return expected_type()
    return json.loads(value)


def parse_datetime(value: datetime | str | None) -> datetime | None:
    """Database timestamps come back as datetimes (Postgres) or ISO strings (SQLite)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace(' ', 'T').replace('Z', '+00:00'))
    # Naive values were written as UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def to_iso8601(dt: datetime | str | None) -> str | None:
    """Convert datetime to ISO8601 string format, handling both datetime objects and strings"""
    if dt is None:
        return None
    try:
        parsed = parse_datetime(dt)
    except (ValueError, AttributeError):
        # If parsing fails, return as-is
        return str(dt)
    assert parsed is not None
    return parsed.isoformat()


def fetch_user_summary(connection, user_id: int) -> UserSummary | None:
    user = connection.execute(
        sqlalchemy.text("SELECT id, name, email FROM users WHERE id = :user_id"),
        {"user_id": user_id}
    ).fetchone()
    if not user:
        return None
    return UserSummary(id=user.id, name=user.name, email=user.email)
