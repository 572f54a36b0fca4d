"""
auth/dependencies.py -- FastAPI Depends() helpers that run the authenticator.

This is the host adapter between Starlette and core/:

  CookieSession      Session view over Starlette's SessionMiddleware dict
  get_context()      one RequestContext per request, cached on request.state
  authenticate()     dependency factory: runs an Authenticate step and applies
                     its Decision
  authorize()        same, but assigns the principal to "account"
  require_user()     dependency factory: authenticate, then demand a principal

Decision mapping:
  CONTINUE   -> the RequestContext is returned to the route
  RESPOND    -> AuthResponse is raised; api/main.py returns its Response
  ERROR      -> the error is raised (AuthenticationError becomes a JSON 4xx)
  DELEGATED  -> the callback result is stored on ctx.result; a Starlette
                Response result is sent as-is

Usage:
    @router.get("/private")
    async def route(user: User = Depends(require_user())): ...

Layer rule: auth/ may import fastapi/starlette here, never api/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request
from starlette.responses import Response

from core.authenticator import Authenticator
from core.context import RequestContext
from core.models import Decision, DecisionKind, HttpResponse
from core.sessions import Session

logger = logging.getLogger("gatehouse.auth.dependencies")

_CONTEXT_ATTR = "auth_context"
_FLASH_KEY = "flash"


# ---------------------------------------------------------------------------
# Session adapter
# ---------------------------------------------------------------------------


class CookieSession(Session):
    """Session backed by Starlette's signed-cookie session dict.

    The cookie carries the whole record, so regenerate() clears it (a fresh
    cookie is signed on the way out) and save() has nothing to do.
    """

    def __init__(self, data: dict) -> None:
        self._data = data

    async def regenerate(self) -> None:
        self._data.clear()

    async def save(self) -> None:
        return None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


def _flasher(session: Optional[Session]) -> Optional[Callable[[str, str], None]]:
    """Flash messages are queued per kind under session["flash"]."""
    if session is None:
        return None

    def flash(kind: str, message: str) -> None:
        queued = dict(session.get(_FLASH_KEY) or {})
        queued[kind] = [*queued.get(kind, []), message]
        session[_FLASH_KEY] = queued

    return flash


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_context(request: Request) -> RequestContext:
    """Return this request's RequestContext, creating it on first use."""
    ctx = getattr(request.state, _CONTEXT_ATTR, None)
    if ctx is None:
        session = CookieSession(request.session) if "session" in request.scope else None
        ctx = get_authenticator(request).context(request, session, flash=_flasher(session))
        setattr(request.state, _CONTEXT_ATTR, ctx)
    return ctx


# ---------------------------------------------------------------------------
# Decision -> Starlette
# ---------------------------------------------------------------------------


class AuthResponse(Exception):
    """Short-circuits the route with a ready Response (redirects, challenges)."""

    def __init__(self, response: Response) -> None:
        super().__init__(response.status_code)
        self.response = response


def to_response(resp: HttpResponse) -> Response:
    response = Response(
        content=resp.body,
        status_code=resp.status,
        media_type="text/plain" if resp.body else None,
    )
    for name, value in resp.headers:
        # Starlette computes Content-Length from the body
        if name.lower() == "content-length":
            continue
        response.headers.append(name, value)
    return response


def apply_decision(ctx: RequestContext, decision: Decision) -> RequestContext:
    if decision.kind is DecisionKind.RESPOND:
        logger.debug("Authentication answered the request directly (%d)", decision.response.status)
        raise AuthResponse(to_response(decision.response))
    if decision.kind is DecisionKind.ERROR:
        raise decision.error
    if decision.kind is DecisionKind.DELEGATED:
        ctx.result = decision.result
        if isinstance(decision.result, Response):
            raise AuthResponse(decision.result)
    return ctx


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def authenticate(
    strategies: Any,
    options: Any = None,
    callback: Optional[Callable[..., Any]] = None,
    **kwargs: Any,
) -> Callable[..., Any]:
    """Return a dependency that runs strategies for the current request.

        @router.post("/login")
        async def login(ctx: RequestContext = Depends(authenticate("local", fail_with_error=True))): ...
    """

    async def run_authenticate(request: Request) -> RequestContext:
        ctx = get_context(request)
        step = get_authenticator(request).authenticate(strategies, options, callback, **kwargs)
        return apply_decision(ctx, await step(ctx))

    return run_authenticate


def authorize(
    strategies: Any,
    options: Any = None,
    callback: Optional[Callable[..., Any]] = None,
    **kwargs: Any,
) -> Callable[..., Any]:
    """Like authenticate(), but leaves the login session alone and assigns ctx.properties["account"]."""

    async def run_authorize(request: Request) -> RequestContext:
        ctx = get_context(request)
        step = get_authenticator(request).authorize(strategies, options, callback, **kwargs)
        return apply_decision(ctx, await step(ctx))

    return run_authorize


def require_user(strategies: Any = "session", **kwargs: Any) -> Callable[..., Any]:
    """Return a dependency yielding the authenticated principal, or raising HTTP 401."""

    async def current_user(ctx: RequestContext = Depends(authenticate(strategies, **kwargs))) -> Any:
        if ctx.is_unauthenticated():
            raise HTTPException(
                status_code=401,
                detail={"code": "unauthorized", "message": "Authentication required."},
            )
        return ctx.user

    return current_user
