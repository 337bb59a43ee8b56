"""Auth gate and auth endpoints: register, login, logout, me, realtime token."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from contactly.application import (
    AuthService,
    Authenticated,
    Duplicate,
    Invalid,
)
from contactly.domain import Identity, User
from contactly.infrastructure import TokenError, TokenIssuer

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"
REALTIME_COOKIE = "realtime_token"


def require_identity(request: Request) -> Identity:
    """Resolve the caller from the session cookie. 401 when absent, 403 when invalid."""
    token = request.cookies.get(AUTH_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")
    tokens: TokenIssuer = request.app.state.tokens
    try:
        return tokens.validate_primary(token)
    except TokenError as e:
        logger.info("Rejected session token: %s", e.reason)
        raise HTTPException(status_code=403, detail="Invalid token.") from e


def _auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _user_out(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name}


def _set_session_cookie(request: Request, response: Response, user: User) -> None:
    tokens: TokenIssuer = request.app.state.tokens
    response.set_cookie(
        AUTH_COOKIE,
        tokens.issue_primary(user),
        max_age=int(tokens.session_ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=request.app.state.settings.cookie_secure,
        samesite="strict",
    )


def _clear_cookie(request: Request, response: Response, key: str) -> None:
    response.delete_cookie(
        key,
        path="/",
        httponly=True,
        secure=request.app.state.settings.cookie_secure,
        samesite="strict",
    )


class RegisterBody(BaseModel):
    email: str
    password: str
    name: str


class LoginBody(BaseModel):
    email: str
    password: str


class RealtimeTokenBody(BaseModel):
    nonce: str | None = None


router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(body: RegisterBody, request: Request, response: Response):
    result = _auth_service(request).register(body.email, body.password, body.name)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    if isinstance(result, Duplicate):
        raise HTTPException(status_code=409, detail="User already exists")
    _set_session_cookie(request, response, result.user)
    return {"user": _user_out(result.user)}


@router.post("/login")
def login(body: LoginBody, request: Request, response: Response):
    result = _auth_service(request).login(body.email, body.password)
    if not isinstance(result, Authenticated):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    _set_session_cookie(request, response, result.user)
    logger.info("User %s logged in", result.user.id)
    return {"user": _user_out(result.user)}


@router.post("/logout")
def logout(request: Request, response: Response):
    _clear_cookie(request, response, AUTH_COOKIE)
    _clear_cookie(request, response, REALTIME_COOKIE)
    return {"message": "Logged out successfully"}


def _current_user(request: Request, identity: Identity) -> User:
    user = _auth_service(request).get_user(identity.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


@router.get("/me")
def me(request: Request, identity: Identity = Depends(require_identity)):
    return {"user": _user_out(_current_user(request, identity))}


@router.post("/realtime-token")
def realtime_token(
    request: Request,
    response: Response,
    body: RealtimeTokenBody | None = None,
    identity: Identity = Depends(require_identity),
):
    """Issue a short-lived realtime credential as a cookie.

    Each call starts a new realtime session with a fresh nonce, so every tab gets its
    own registration. A client reconnecting its own session sends back the nonce it was
    given; it is kept only when it matches the caller's current realtime cookie, and the
    next handshake then replaces the stale registration instead of adding a second one.
    """
    user = _current_user(request, identity)
    tokens: TokenIssuer = request.app.state.tokens
    nonce = None
    if body is not None and body.nonce:
        recovered = tokens.recover_nonce(request.cookies.get(REALTIME_COOKIE), user.id)
        if recovered == body.nonce:
            nonce = recovered
    grant = tokens.issue_realtime(user, nonce)
    ttl_seconds = int(tokens.realtime_ttl.total_seconds())
    response.set_cookie(
        REALTIME_COOKIE,
        grant.token,
        max_age=ttl_seconds,
        path="/",
        httponly=True,
        secure=request.app.state.settings.cookie_secure,
        samesite="strict",
    )
    return {
        "nonce": grant.nonce,
        "expires_at": grant.expires_at.isoformat(),
        "ttl_seconds": ttl_seconds,
    }
