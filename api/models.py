"""
API request and response models for Nori REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Session

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AuthRequest(BaseModel):
    """Request body for POST /api/register and POST /api/login.

    username is not stripped or case-folded: usernames are case-sensitive and
    stored exactly as submitted. No password-strength policy is applied; the
    length caps only bound the cost of hashing a hostile payload.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)
    remember: Optional[bool] = False


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AuthResponse(BaseModel):
    """Successful register/login result.

    session_id duplicates the cookie value so non-browser clients can send it
    back as "Authorization: Bearer <session_id>". expires_at is None for
    remembered sessions.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: int
    expires_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: Session) -> "AuthResponse":
        return cls(session_id=session.id, user_id=session.user_id, expires_at=session.expires_at)


class MeResponse(BaseModel):
    """Response for GET /api/me."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    session_expires_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
