"""
api/routes/auth.py -- Registration, login, logout, and identity endpoints.

Routes:
  POST /api/register   -- create user; issue session; 201 + Set-Cookie
  POST /api/login      -- verify password; issue session; 200 + Set-Cookie
  POST /api/logout     -- revoke the caller's session (if any); clear cookie
  GET  /api/me         -- identity behind the current session (requires session)

Failures are raised as AuthError subclasses from the stores and turned into
the standard error envelope by the handler in api/main.py:
  user_already_exists -> 409, invalid/incorrect_credentials -> 401,
  session_not_found / session_expired -> 401, internal_error -> 500.

Security:
  Cache-Control: no-store on every response that carries a session id.
  The session cookie is built by SessionManager.serialize_cookie() so the
  HttpOnly / Secure / SameSite=Strict attributes live in one place.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthRequest, AuthResponse, MeResponse, MessageResponse
from auth.credentials import CredentialStore
from auth.dependencies import get_current_session, get_session_id
from auth.errors import SessionNotFound
from auth.models import Session
from auth.sessions import SessionManager

# Auth policy:
# - POST /api/register: public -- creates the identity it authenticates
# - POST /api/login:    public -- login endpoint must be unauthenticated
# - POST /api/logout:   public -- revoking an absent session is a no-op
# - GET  /api/me:       requires a live session (get_current_session)
router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: AuthRequest) -> JSONResponse:
    """Create a user, then issue a session for it exactly as login would.

    The duplicate-username check is done by the store (precheck + UNIQUE
    constraint); a duplicate surfaces here as UserAlreadyExists -> 409.
    """
    credential_store: CredentialStore = request.app.state.credential_store
    session_manager: SessionManager = request.app.state.session_manager

    user_id = credential_store.register(body.username, body.password)
    session = session_manager.create_session(user_id, remember=bool(body.remember))
    return _session_response(session_manager, session, status_code=201)


@router.post("/login", response_model=AuthResponse)
def login(request: Request, body: AuthRequest) -> JSONResponse:
    """Authenticate with username and password; issue a session and set its cookie."""
    credential_store: CredentialStore = request.app.state.credential_store
    session_manager: SessionManager = request.app.state.session_manager

    user_id = credential_store.authenticate(body.username, body.password)
    session = session_manager.create_session(user_id, remember=bool(body.remember))
    return _session_response(session_manager, session, status_code=200)


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Revoke the caller's session and clear the cookie.

    Always 200: logging out without a session, or with one that was already
    revoked, leaves the client in the same state as a successful logout.
    """
    session_manager: SessionManager = request.app.state.session_manager
    session_id = get_session_id(request)
    if session_id:
        session_manager.revoke_session(session_id)

    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    resp.delete_cookie(
        session_manager.cookie_name,
        path="/",
        secure=True,
        httponly=True,
        samesite="strict",
    )
    return resp


@router.get("/me", response_model=MeResponse)
def me(request: Request, session: Session = Depends(get_current_session)) -> MeResponse:
    """Return identity information for the owner of the current session."""
    credential_store: CredentialStore = request.app.state.credential_store
    user = credential_store.get_user(session.user_id)
    if user is None:
        raise SessionNotFound()
    return MeResponse(
        user_id=user.id,
        username=user.username,
        session_expires_at=session.expires_at,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_response(session_manager: SessionManager, session: Session, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse.from_session(session).model_dump(mode="json"),
    )
    resp.headers.append("Set-Cookie", session_manager.serialize_cookie(session))
    resp.headers["Cache-Control"] = "no-store"
    return resp
