"""
auth/sessions.py -- Session Manager: issue, resolve, and revoke server-side sessions.

Security design decisions:
  Session ids: secrets.token_urlsafe(32) gives 256 bits of entropy from the OS
       CSPRNG. The id is the bearer token and the primary key; nothing about
       the user is encoded in it, so it reveals nothing and cannot be forged.

  Expiry: evaluated lazily in validate_session(). A session whose expires_at
       is at or before "now" is rejected with SessionExpired. Remembered
       sessions (expires_at None) are never rejected for age. Expired rows are
       not swept; they stay until revoke_session() removes them.

  Every authenticated request is looked up in the store. The presence of a
       cookie alone never counts as being logged in.

  Cookie: HttpOnly (no JS access), Secure (HTTPS only), SameSite=Strict (never
       sent on cross-site requests), Path=/. Expires mirrors expires_at, or a
       fixed far-future date for remembered sessions.

The clock is injectable so expiry can be tested without sleeping.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from http.cookies import CookieError, SimpleCookie

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import InternalServerError, SessionExpired, SessionNotFound
from auth.models import Session
from auth.schema import sessions

logger = logging.getLogger("nori.auth")

DEFAULT_COOKIE_NAME = "session"

# Cookie Expires for remembered sessions. Chosen to stay inside the signed
# 32-bit time_t range that some clients still parse cookie dates into.
LONG_LIVED_COOKIE_EXPIRES = datetime(2037, 12, 31, 23, 55, 55, tzinfo=timezone.utc)

# RFC 6265 cookie-octet: any visible ASCII except DQUOTE, comma, semicolon, backslash.
_COOKIE_VALUE_RE = re.compile(r"^[\x21\x23-\x2B\x2D-\x3A\x3C-\x5B\x5D-\x7E]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionManager:
    """Repository and policy for Session records.

    Usage:
        manager = SessionManager(engine, ttl_seconds=3600)
        session = manager.create_session(user_id, remember=False)
        header = manager.serialize_cookie(session)
        user_id = manager.resolve_session(session.id)
    """

    def __init__(
        self,
        engine: Engine,
        ttl_seconds: int,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.engine = engine
        self.ttl = timedelta(seconds=ttl_seconds)
        self.cookie_name = cookie_name
        self._clock = clock

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def create_session(self, user_id: int, remember: bool = False) -> Session:
        """Persist and return a new session for user_id.

        remember=True yields a session with no expiry; otherwise it expires
        ttl seconds from now. Raises InternalServerError if the insert fails,
        including when user_id does not reference an existing user.
        """
        created_at = self._clock()
        expires_at = None if remember else created_at + self.ttl
        session = Session(
            id=generate_session_id(),
            user_id=user_id,
            created_at=created_at,
            expires_at=expires_at,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    sessions.insert().values(
                        id=session.id,
                        user_id=session.user_id,
                        created_at=session.created_at.isoformat(),
                        expires_at=session.expires_at.isoformat() if session.expires_at else None,
                    )
                )
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("Error creating session for user id=%s", user_id)
            raise InternalServerError() from exc

        logger.info("Issued %s session for user id=%s", "remembered" if remember else "expiring", user_id)
        return session

    def serialize_cookie(self, session: Session) -> str:
        """Return the Set-Cookie header value that binds the cookie to session.id.

        Raises InternalServerError if the id cannot be carried in a cookie.
        """
        if not _COOKIE_VALUE_RE.match(session.id):
            logger.error("Refusing to serialize a session id with characters illegal in a cookie")
            raise InternalServerError()

        expires = session.expires_at if session.expires_at is not None else LONG_LIVED_COOKIE_EXPIRES
        cookie: SimpleCookie = SimpleCookie()
        try:
            cookie[self.cookie_name] = session.id
        except CookieError as exc:
            logger.error("Could not build session cookie: %s", exc)
            raise InternalServerError() from exc
        morsel = cookie[self.cookie_name]
        morsel["expires"] = format_datetime(expires.astimezone(timezone.utc), usegmt=True)
        morsel["path"] = "/"
        morsel["secure"] = True
        morsel["httponly"] = True
        morsel["samesite"] = "Strict"
        return morsel.OutputString()

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> Session | None:
        """Plain lookup by id. Does not check expiry."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(sessions.select().where(sessions.c.id == session_id)).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("Error finding session")
            raise InternalServerError() from exc
        return _row_to_session(row) if row is not None else None

    def validate_session(self, session_id: str) -> Session:
        """Return the live session for session_id.

        Raises SessionNotFound if there is no such session and SessionExpired
        if its expires_at is at or before the current time.
        """
        if not session_id:
            raise SessionNotFound()
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFound()
        if session.is_expired(self._clock()):
            raise SessionExpired()
        return session

    def resolve_session(self, session_id: str) -> int:
        """Return the id of the user that owns a live session."""
        return self.validate_session(session_id).user_id

    # ------------------------------------------------------------------
    # Revoke
    # ------------------------------------------------------------------

    def revoke_session(self, session_id: str) -> bool:
        """Delete a session. Returns True if a row was removed, False if none matched."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(sessions.delete().where(sessions.c.id == session_id))
                conn.commit()
        except SQLAlchemyError as exc:
            logger.exception("Error revoking session")
            raise InternalServerError() from exc
        return result.rowcount > 0

    def count_sessions(self, user_id: int) -> int:
        """Number of stored sessions (live or expired) belonging to user_id."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    select(func.count()).select_from(sessions).where(sessions.c.user_id == user_id)
                ).scalar()
        except SQLAlchemyError as exc:
            logger.exception("Error counting sessions")
            raise InternalServerError() from exc
        return result or 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        created_at=datetime.fromisoformat(row.created_at),
        expires_at=datetime.fromisoformat(row.expires_at) if row.expires_at is not None else None,
    )
