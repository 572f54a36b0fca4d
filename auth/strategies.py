"""
auth/strategies.py -- Bundled authentication strategies.

Each strategy reads credentials from the host request, hands them to a
host-supplied `verify` callable, and reports through the Outcome:

  LocalStrategy      username + password from a JSON body (or a plain mapping)
  BearerStrategy     RFC 6750 "Authorization: Bearer <token>" header
  AnonymousStrategy  always passes; lets a route continue unauthenticated

`verify` may be sync or async and returns the principal, a falsy value for
"credentials rejected", or a (principal, info) tuple. Exceptions raised by
verify are reported with outcome.error().

Layer rule: imports core/ only; no api/ imports.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional

from core.strategy import BaseStrategy, Outcome

logger = logging.getLogger("gatehouse.auth.strategies")


async def _call(verify: Callable[..., Any], *args: Any) -> tuple[Any, Any]:
    result = verify(*args)
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, tuple) and len(result) == 2:
        return result[0], result[1]
    return result, None


# ---------------------------------------------------------------------------
# Username / password
# ---------------------------------------------------------------------------


async def _read_credentials(request: Any) -> Mapping:
    """Return the credential mapping carried by request.

    Starlette requests are read as JSON; a plain mapping is used as-is (handy
    for non-HTTP hosts). An unreadable body counts as no credentials.
    """
    if hasattr(request, "json"):
        try:
            body = await request.json()
        except ValueError:
            return {}
        return body if isinstance(body, Mapping) else {}
    if isinstance(request, Mapping):
        return request
    return {}


class LocalStrategy(BaseStrategy):
    """Username/password login.

    Missing credentials fail with status 400; rejected credentials fail with
    the verifier's info or a generic message (status left to the default 401).
    """

    name = "local"

    def __init__(
        self,
        verify: Callable[[str, str], Any],
        *,
        username_field: str = "username",
        password_field: str = "password",
        name: Optional[str] = None,
    ) -> None:
        self._verify = verify
        self._username_field = username_field
        self._password_field = password_field
        if name:
            self.name = name

    async def authenticate(self, context: Any, options: Any, outcome: Outcome) -> None:
        credentials = await _read_credentials(context.request)
        username = credentials.get(self._username_field)
        password = credentials.get(self._password_field)
        if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
            message = options.get("bad_request_message") or "Missing credentials"
            outcome.fail({"message": message}, 400)
            return

        try:
            principal, info = await _call(self._verify, username, password)
        except Exception as exc:
            logger.warning("%s verifier raised: %s", self.name, exc)
            outcome.error(exc)
            return

        if not principal:
            outcome.fail(info or {"message": "Invalid username or password."})
            return
        outcome.success(principal, info)


# ---------------------------------------------------------------------------
# Bearer token
# ---------------------------------------------------------------------------


def _authorization_header(request: Any) -> Optional[str]:
    headers = getattr(request, "headers", None)
    if headers is None and isinstance(request, Mapping):
        headers = request.get("headers")
    if not headers:
        return None
    # Starlette Headers are case-insensitive; plain dicts are not
    return headers.get("authorization") or headers.get("Authorization")


class BearerStrategy(BaseStrategy):
    """Bearer token authentication with RFC 6750 challenges.

    No header           -> fail('Bearer realm="..."')           (401 + WWW-Authenticate)
    Malformed header    -> fail(400)
    Token rejected      -> fail('Bearer realm="...", error="invalid_token", ...')
    """

    name = "bearer"

    def __init__(
        self,
        verify: Callable[[str], Any],
        *,
        realm: str = "Users",
        scope: Optional[list[str]] = None,
        name: Optional[str] = None,
    ) -> None:
        self._verify = verify
        self._realm = realm
        self._scope = list(scope or [])
        if name:
            self.name = name

    async def authenticate(self, context: Any, options: Any, outcome: Outcome) -> None:
        header = _authorization_header(context.request)
        if not header:
            outcome.fail(self._challenge())
            return

        parts = header.split()
        if len(parts) != 2:
            outcome.fail(400)
            return
        scheme, token = parts
        if scheme.lower() != "bearer":
            outcome.fail(self._challenge())
            return

        try:
            principal, info = await _call(self._verify, token)
        except Exception as exc:
            logger.warning("%s verifier raised: %s", self.name, exc)
            outcome.error(exc)
            return

        if not principal:
            outcome.fail(self._challenge("invalid_token", "The access token is invalid or has expired"))
            return
        outcome.success(principal, info)

    def _challenge(self, code: Optional[str] = None, description: Optional[str] = None) -> str:
        params = [f'realm="{self._realm}"']
        if self._scope:
            params.append(f'scope="{" ".join(self._scope)}"')
        if code:
            params.append(f'error="{code}"')
        if description:
            params.append(f"error_description={json.dumps(description)}")
        return "Bearer " + ", ".join(params)


# ---------------------------------------------------------------------------
# Anonymous
# ---------------------------------------------------------------------------


class AnonymousStrategy(BaseStrategy):
    """Declines to decide. Put it last in a list to make authentication optional."""

    name = "anonymous"

    def authenticate(self, context: Any, options: Any, outcome: Outcome) -> None:
        outcome.pass_()
