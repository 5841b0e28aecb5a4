"""
Connection profile store.

CRUD over named connection strings in a local SQLite database. Name
uniqueness is enforced by the database's unique constraint and surfaced as
DuplicateNameError.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from common.config import config
from common.errors import DuplicateNameError, NotFoundError, ValidationError
from common.logging import get_logger
from models.connection import ConnectionProfile
from services.connections.orm_models import Base, ConnectionRecord, utc_now_iso

logger = get_logger(__name__)


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class ConnectionStore:
    """Saved connection profiles, ordered by name."""

    def __init__(self, database_url: str | None = None):
        database_url = database_url or config.database_url
        _ensure_sqlite_directory(database_url)

        self.engine = create_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.session_factory = sessionmaker(self.engine, expire_on_commit=False)
        logger.info(f"Connection store ready at {make_url(database_url).render_as_string(hide_password=True)}")

    def list(self) -> list[ConnectionProfile]:
        with self.session_factory() as session:
            records = session.scalars(select(ConnectionRecord).order_by(ConnectionRecord.name)).all()
            return [ConnectionProfile.model_validate(r) for r in records]

    def get(self, id: int) -> ConnectionProfile | None:
        with self.session_factory() as session:
            record = session.get(ConnectionRecord, id)
            return ConnectionProfile.model_validate(record) if record else None

    def create(self, name: str, connection_string: str) -> ConnectionProfile:
        if not name or not connection_string:
            raise ValidationError("Name and connection string are required")

        with self.session_factory() as session:
            record = ConnectionRecord(name=name, connection_string=connection_string)
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateNameError("A connection with this name already exists") from e

            logger.info(f"Created connection profile '{name}' (id={record.id})")
            return ConnectionProfile.model_validate(record)

    def update(self, id: int, name: str, connection_string: str | None = None) -> ConnectionProfile:
        """Rename a profile and, when given a non-empty value, replace its connection string."""
        if not name:
            raise ValidationError("Name is required")

        with self.session_factory() as session:
            record = session.get(ConnectionRecord, id)
            if record is None:
                raise NotFoundError("Connection not found")

            record.name = name
            if connection_string:
                record.connection_string = connection_string
            record.updated_at = utc_now_iso()

            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateNameError("A connection with this name already exists") from e

            logger.info(f"Updated connection profile {id}")
            return ConnectionProfile.model_validate(record)

    def delete(self, id: int) -> bool:
        with self.session_factory() as session:
            record = session.get(ConnectionRecord, id)
            if record is None:
                return False
            session.delete(record)
            session.commit()

        logger.info(f"Deleted connection profile {id}")
        return True
