import logging
from datetime import datetime, timezone
from typing import Generator

from fastapi import Request
from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

photos = Table(
    "photos",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("caption", Text, nullable=False, default=""),
    Column("photo_url", String(1024), nullable=False),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

Index("idx_photos_created_at", photos.c.created_at)
Index("idx_photos_user_id", photos.c.user_id)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless enforcement is switched on per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# PUBLIC_INTERFACE
def create_db_engine(database_url: str) -> Engine:
    """Create the engine for a database URL (PostgreSQL via psycopg, or SQLite)."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            future=True,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(
        database_url,
        pool_pre_ping=True,
        future=True,
    )


# PUBLIC_INTERFACE
def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# PUBLIC_INTERFACE
def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy session and guarantees close().

    Anything not committed by the handler is rolled back on close.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


# PUBLIC_INTERFACE
def ensure_schema(engine: Engine) -> None:
    """
    Ensure required tables exist.

    Creates:
      - users
      - photos (cascading on user delete)
    """
    metadata.create_all(engine)
    logger.info("Database schema ensured")


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Return current UTC timestamp with tzinfo."""
    return datetime.now(tz=timezone.utc)
