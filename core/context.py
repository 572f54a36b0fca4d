"""
core/context.py -- Explicit per-request authentication context.

Instead of patching fields and helper methods onto the host's request
object, the framework adapter builds one RequestContext per request and
threads it through the orchestrator, the session manager and every strategy.

    ctx.request          the host request (opaque to core/)
    ctx.session          a core.sessions.Session, or None
    ctx.properties       where principals are assigned ("user", "account", ...)
    ctx.auth_info        transformed auth info after a successful login
    ctx.result           completion-callback return value, when one was used
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

from core.errors import CapabilityMissingError
from core.models import AuthenticateOptions

logger = logging.getLogger("gatehouse.core.context")

DEFAULT_USER_PROPERTY = "user"


class RequestContext:
    def __init__(
        self,
        request: Any = None,
        session: Any = None,
        *,
        session_manager: Any = None,
        user_property: str = DEFAULT_USER_PROPERTY,
        flash: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.request = request
        self.session = session
        self.session_manager = session_manager
        self.user_property = user_property or DEFAULT_USER_PROPERTY
        self.properties: dict[str, Any] = {}
        self.auth_info: Any = None
        self.result: Any = None
        self._flash = flash

    # ------------------------------------------------------------------
    # Principal access
    # ------------------------------------------------------------------

    @property
    def user(self) -> Any:
        """The principal assigned under user_property, or None."""
        return self.properties.get(self.user_property)

    @user.setter
    def user(self, principal: Any) -> None:
        self.properties[self.user_property] = principal

    def is_authenticated(self) -> bool:
        return bool(self.properties.get(self.user_property))

    def is_unauthenticated(self) -> bool:
        return not self.is_authenticated()

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    async def login(self, principal: Any, options: Any = None) -> None:
        """Assign principal and, unless options.session is False, start a login session.

        On a session failure the principal assignment is rolled back to None
        and the error re-raised.
        """
        options = AuthenticateOptions.build(options)
        self.user = principal
        if not (options.session and self.session_manager is not None):
            return
        try:
            await self.session_manager.login(self, principal, options)
        except Exception:
            logger.debug("Session login failed; %s reset", self.user_property)
            self.user = None
            raise

    async def logout(self, options: Any = None) -> None:
        """Clear the principal and terminate the login session, if any."""
        self.user = None
        if self.session_manager is not None:
            await self.session_manager.logout(self, AuthenticateOptions.build(options))

    # ------------------------------------------------------------------
    # Host messaging collaborators
    # ------------------------------------------------------------------

    def flash(self, kind: str, message: str) -> None:
        if self._flash is None:
            raise CapabilityMissingError("Flash messages require a flash handler on the request context.")
        self._flash(kind, message)

    def push_message(self, message: str) -> None:
        """Append message to session["messages"]."""
        if self.session is None:
            raise CapabilityMissingError("Session messages require session support.")
        messages = list(self.session.get("messages") or [])
        messages.append(message)
        self.session["messages"] = messages
