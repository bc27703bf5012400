"""
auth/credentials.py -- Credential Store: user registration and password login.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user is the mapper. Route and dependency code never touches SQL
directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  register() prechecks username existence, then relies on the UNIQUE
  constraint as the final arbiter. IntegrityError on insert is reported as
  UserAlreadyExists so a lost race looks identical to an ordinary duplicate.

  authenticate() always runs one Argon2 verification, against DUMMY_HASH when
  the username is unknown, so response time does not reveal which usernames
  exist.

  Storage errors are logged here and re-raised as InternalServerError. Raw
  driver messages never reach callers.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import IncorrectCredentials, InternalServerError, InvalidCredentials, UserAlreadyExists
from auth.models import User
from auth.passwords import DUMMY_HASH, hash_password, verify_password
from auth.schema import users

logger = logging.getLogger("nori.auth")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CredentialStore:
    """Repository for User records and the password checks built on them.

    Usage:
        store = CredentialStore(create_db_engine("sqlite:///nori.db"))
        user_id = store.register("alice", "correct horse")
        assert store.authenticate("alice", "correct horse") == user_id
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, username: str, password: str) -> int:
        """Create a user and return its new id.

        Raises UserAlreadyExists if the username is taken -- whether the
        precheck catches it or the UNIQUE constraint does.
        Raises InternalServerError on storage or hashing failure.
        """
        if self._get_by_username(username) is not None:
            raise UserAlreadyExists()

        password_hash = hash_password(password)
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    users.insert().values(
                        username=username,
                        password_hash=password_hash,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            # A concurrent registration won the race between precheck and insert.
            logger.info("Registration lost uniqueness race; reporting duplicate")
            raise UserAlreadyExists() from exc
        except SQLAlchemyError as exc:
            logger.exception("Error inserting user")
            raise InternalServerError() from exc

        user_id = result.inserted_primary_key[0]
        logger.info("Registered user id=%s", user_id)
        return user_id

    def authenticate(self, username: str, password: str) -> int:
        """Verify a username/password pair and return the matching user id.

        Raises InvalidCredentials for an unknown username and
        IncorrectCredentials for a wrong password.
        """
        user = self._get_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return before running Argon2.
            verify_password(password, DUMMY_HASH)
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.info("Rejected password for user id=%s", user.id)
            raise IncorrectCredentials()
        return user.id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("Error finding user by id")
            raise InternalServerError() from exc
        return _row_to_user(row) if row is not None else None

    def count_users(self) -> int:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(select(func.count()).select_from(users)).scalar()
        except SQLAlchemyError as exc:
            logger.exception("Error counting users")
            raise InternalServerError() from exc
        return result or 0

    def _get_by_username(self, username: str) -> User | None:
        """Exact, case-sensitive username lookup."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(users.select().where(users.c.username == username)).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("Error finding user by username")
            raise InternalServerError() from exc
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=datetime.fromisoformat(row.created_at),
    )
