"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Two places a session id can arrive, checked in priority order:
  1. Session cookie (name from Settings.session_cookie_name) -- set by
     POST /api/register and POST /api/login.
  2. Authorization: Bearer <session id> header -- API clients that store the
     session_id returned in the JSON body.

Both converge on SessionManager.validate_session(), which queries the store
and checks expiry. A cookie that is merely present proves nothing.

get_session_id() extracts the raw token without validating it (logout uses
it). get_current_session() raises SessionNotFound / SessionExpired, which the
AuthError handler in api/main.py turns into a 401.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Session
from auth.sessions import SessionManager


def get_session_id(request: Request) -> str | None:
    """Return the session id carried by the request, or None if there is none."""
    session_manager: SessionManager = request.app.state.session_manager

    token: str | None = request.cookies.get(session_manager.cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def get_current_session(request: Request) -> Session:
    """Require a live session. Raises SessionNotFound or SessionExpired otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(session: Session = Depends(get_current_session)): ...
    """
    session_manager: SessionManager = request.app.state.session_manager
    return session_manager.validate_session(get_session_id(request) or "")
