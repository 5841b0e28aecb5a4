"""SQLAlchemy ORM models for the local connection-profile database."""

from datetime import UTC, datetime

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now_iso() -> str:
    """Current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class ConnectionRecord(Base):
    """A saved Service Bus connection string, unique by name."""

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    connection_string: Mapped[str] = mapped_column("connectionString", Text, nullable=False)

    # Timestamps (ISO8601 strings for SQLite compatibility)
    created_at: Mapped[str] = mapped_column("createdAt", String(50), nullable=False, default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column("updatedAt", String(50), nullable=False, default=utc_now_iso)

    def __repr__(self) -> str:
        return f"<ConnectionRecord(id={self.id!r}, name={self.name!r})>"
