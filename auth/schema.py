"""
auth/schema.py -- SQLAlchemy Core schema and engine factory for auth entities.

Both tables live in one database because sessions.user_id is a foreign key
into users. The CredentialStore and SessionManager share a single Engine
created here.

Security:
  username carries a UNIQUE constraint. The store's existence precheck gives a
  friendly error on the common path, but only the constraint is race-free:
  two concurrent registrations can both pass the precheck, and the second
  INSERT then fails with IntegrityError.

Timestamps are ISO 8601 strings with an explicit +00:00 offset, the same
representation used for every created_at column in this codebase.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),  # Argon2id PHC string
    Column("created_at", String(32), nullable=False),
)

sessions = Table(
    "sessions",
    metadata,
    Column("id", String(64), primary_key=True),  # the bearer token itself
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32)),  # NULL = remembered, never expires
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journaling and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. Without foreign_keys=ON SQLite silently accepts
    sessions that point at nonexistent users.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Create an Engine for db_url and make sure both tables exist.

    create_all() is idempotent (CREATE TABLE IF NOT EXISTS semantics), so this
    is safe to call on every startup.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # TestClient and uvicorn's thread pool hand connections across threads.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _configure_sqlite)
    metadata.create_all(engine)
    return engine
