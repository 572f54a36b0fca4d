"""Tests for the FastAPI adapter in auth/dependencies.py, on a throwaway app.

Covers:
- Redirect decisions become real 302 responses; the session cookie survives them
- failure_flash queues a message in the cookie session
- require_user() restores the session principal, 401 otherwise
- authorize() assigns the account without touching the logged-in user
- Completion callbacks: plain results reach the route, Response results are sent
- ERROR decisions propagate as exceptions
"""

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient
from starlette.middleware.sessions import SessionMiddleware

from auth.dependencies import AuthResponse, authenticate, authorize, require_user
from auth.strategies import BearerStrategy, LocalStrategy
from core.authenticator import Authenticator
from core.context import RequestContext
from core.errors import ConfigurationError


def _on_done(err, principal=None, *rest):
    if not principal:
        return PlainTextResponse("denied", status_code=403)
    return {"linked": principal["id"]}


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key="k" * 32)

    authenticator = Authenticator()
    authenticator.serialize_user(lambda user: user["id"])
    authenticator.deserialize_user(lambda ident: {"id": ident})
    authenticator.use(LocalStrategy(lambda username, password: {"id": 1} if password == "pw" else None))
    authenticator.use(BearerStrategy(lambda token: {"id": 5} if token == "ok" else None))
    app.state.authenticator = authenticator

    @app.exception_handler(AuthResponse)
    async def auth_response(request: Request, exc: AuthResponse):
        return exc.response

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        return JSONResponse({"error": str(exc)}, status_code=500)

    login_step = authenticate(
        "local",
        success_redirect="/home",
        failure_redirect="/login",
        failure_flash=True,
    )

    @app.post("/login")
    async def login(ctx: RequestContext = Depends(login_step)):
        return {"unreachable": True}

    @app.get("/flash")
    async def flash(request: Request):
        return request.session.get("flash", {})

    @app.get("/whoami")
    async def whoami(user=Depends(require_user())):
        return user

    @app.get("/link")
    async def link(ctx: RequestContext = Depends(authorize("bearer"))):
        return {"account": ctx.properties["account"], "user": ctx.user}

    @app.get("/custom")
    async def custom(ctx: RequestContext = Depends(authenticate("bearer", callback=_on_done))):
        return ctx.result

    @app.get("/broken")
    async def broken(ctx: RequestContext = Depends(authenticate("missing"))):
        return {}

    return app


@pytest.fixture
def client():
    with TestClient(_build_app(), follow_redirects=False) as c:
        yield c


def test_success_redirect_logs_in(client):
    resp = client.post("/login", json={"username": "alice", "password": "pw"})
    assert resp.status_code == 302
    assert resp.headers["location"] == "/home"
    assert client.get("/whoami").json() == {"id": 1}


def test_failure_redirect_queues_flash(client):
    resp = client.post("/login", json={"username": "alice", "password": "bad"})
    assert resp.status_code == 302
    assert resp.headers["location"] == "/login"
    assert client.get("/flash").json() == {"error": ["Invalid username or password."]}


def test_require_user_without_session(client):
    assert client.get("/whoami").status_code == 401


def test_authorize_assigns_account_only(client):
    client.post("/login", json={"username": "alice", "password": "pw"})
    resp = client.get("/link", headers={"Authorization": "Bearer ok"})
    assert resp.status_code == 200
    # the session user is only restored by the "session" strategy
    assert resp.json() == {"account": {"id": 5}, "user": None}
    assert client.get("/whoami").json() == {"id": 1}


def test_callback_result_reaches_route(client):
    resp = client.get("/custom", headers={"Authorization": "Bearer ok"})
    assert resp.json() == {"linked": 5}


def test_callback_response_is_sent(client):
    resp = client.get("/custom", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 403
    assert resp.text == "denied"


def test_error_decision_raises(client):
    resp = client.get("/broken")
    assert resp.status_code == 500
    assert resp.json() == {"error": 'Unknown authentication strategy "missing"'}
