"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond trivial
predicates). Dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered identity.

    username is case-sensitive and stored exactly as submitted -- "Alice" and
    "alice" are two different accounts.

    password_hash is an Argon2id PHC string ($argon2id$v=19$m=...,t=...,p=...$salt$hash).
    The salt lives inside the string, so no separate salt column exists.
    """

    username: str
    password_hash: str
    id: int | None = None
    created_at: datetime | None = None


@dataclass
class Session:
    """A server-side authorization record.

    id is the bearer token itself: the value placed in the session cookie and
    accepted in "Authorization: Bearer <id>". There is no separate lookup key.

    expires_at is None for remembered sessions, which never expire server-side.
    Otherwise it is a timezone-aware UTC datetime strictly after created_at.
    """

    id: str
    user_id: int
    created_at: datetime
    expires_at: datetime | None = None

    @property
    def remembered(self) -> bool:
        return self.expires_at is None

    def is_expired(self, now: datetime) -> bool:
        """Return True once now has reached expires_at. Remembered sessions never expire."""
        return self.expires_at is not None and self.expires_at <= now
