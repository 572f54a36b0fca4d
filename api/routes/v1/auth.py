"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login     -- local strategy; starts a cookie session
  POST /api/v1/auth/token     -- local strategy without a session; returns a JWT
  POST /api/v1/auth/logout    -- ends the cookie session
  GET  /api/v1/auth/me        -- principal restored from the session
  GET  /api/v1/auth/token/me  -- principal from the Authorization: Bearer header

Security:
  Login and token routes are rate limited per client IP (LOGIN_RATE_LIMIT).
  Credentials are checked by authenticate_user(), which is timing-equalized.
  Session login regenerates the session before the identity is written.
  Cache-Control: no-store on responses that carry credentials.

Failure shapes:
  /login and /token use fail_with_error, so rejected credentials surface as
  the JSON ErrorResponse envelope (401, or 400 for missing fields).
  /token/me answers a plain 401 with RFC 6750 WWW-Authenticate challenges.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import LoginResponse, MeResponse, MessageResponse, TokenResponse
from auth.dependencies import authenticate, require_user
from auth.models import User
from auth.tokens import create_access_token
from core.config import get_settings
from core.context import RequestContext

# Auth policy:
# - POST /api/v1/auth/login:     public -- rate limited
# - POST /api/v1/auth/token:     public -- rate limited
# - POST /api/v1/auth/logout:    public -- logging out an anonymous session is a no-op
# - GET  /api/v1/auth/me:        requires a session login
# - GET  /api/v1/auth/token/me:  requires a bearer token
router = APIRouter()

_password_login = authenticate("local", fail_with_error=True)
_password_token = authenticate("local", session=False, fail_with_error=True)


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)
async def login(request: Request) -> JSONResponse:
    """Check username/password from the JSON body and start a session.

    The credential check runs inside the rate-limited body so rejected
    attempts count against the limit too.
    """
    ctx = await _password_login(request)
    user: User = ctx.user
    resp = JSONResponse(content=LoginResponse(user_id=user.id, username=user.username, role=user.role).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/token", response_model=TokenResponse)
@limiter.limit(login_rate_limit)
async def issue_token(request: Request) -> JSONResponse:
    """Exchange username/password for a bearer token. No session is created."""
    ctx = await _password_token(request)
    user: User = ctx.user
    expires_in = get_settings().token_expire_seconds
    token = create_access_token(user.id, user.username, user.role, expire_seconds=expires_in)
    resp = JSONResponse(
        content=TokenResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=expires_in,
            username=user.username,
            role=user.role,
        ).model_dump()
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(ctx: RequestContext = Depends(authenticate("session"))) -> MessageResponse:
    await ctx.logout()
    return MessageResponse(message="Logged out.")


@router.get("/auth/me", response_model=MeResponse)
async def me(user: User = Depends(require_user("session"))) -> MeResponse:
    return MeResponse.from_user(user, auth_method="session")


@router.get("/auth/token/me", response_model=MeResponse)
async def token_me(ctx: RequestContext = Depends(authenticate("bearer", session=False))) -> MeResponse:
    """Bearer-authenticated identity. A missing or bad token never reaches this body."""
    return MeResponse.from_user(ctx.user, auth_method=ctx.auth_info.get("scope", "token"))
