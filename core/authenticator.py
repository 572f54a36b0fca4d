"""
core/authenticator.py -- Facade that owns strategies, codec chains and sessions.

Pattern: Facade. Host applications create one Authenticator at startup,
register strategies and codec handlers on it, and ask it for Authenticate
steps per route. A framework adapter (see auth/dependencies.py) builds the
per-request context via Authenticator.context() and applies the Decision.

    authenticator = Authenticator()
    authenticator.use(LocalStrategy(verify))

    @authenticator.serialize_user
    def user_id(user):
        return user.id

    @authenticator.deserialize_user
    def load_user(user_id):
        return store.get_by_id(user_id)

    login_step = authenticator.authenticate("local", success_redirect="/")
    decision = await login_step(authenticator.context(request, session))

Every Authenticator registers the built-in "session" strategy, which restores
the principal stored by a previous login through the deserialize chain.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

from core.authenticate import Authenticate
from core.codec import PrincipalCodec
from core.context import DEFAULT_USER_PROPERTY, RequestContext
from core.models import AuthenticateOptions
from core.registry import StrategyRegistry
from core.session_strategy import SessionStrategy
from core.sessions import DEFAULT_KEY, SessionManager
from core.strategy import Strategy

logger = logging.getLogger("gatehouse.core.authenticator")


class Authenticator:
    def __init__(self, key: str = DEFAULT_KEY, user_property: str = DEFAULT_USER_PROPERTY) -> None:
        self.key = key or DEFAULT_KEY
        self.user_property = user_property
        self.registry = StrategyRegistry()
        self.codec = PrincipalCodec()
        self.session_manager = SessionManager(self.codec.serialize, key=self.key)
        self.use(SessionStrategy(self.codec.deserialize, key=self.key))

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def use(self, strategy: Strategy, name: Optional[str] = None) -> "Authenticator":
        registered = self.registry.register(strategy, name)
        logger.debug("Authentication strategy %r registered", registered)
        return self

    def unuse(self, name: str) -> "Authenticator":
        self.registry.unregister(name)
        return self

    def strategy(self, name: str) -> Optional[Strategy]:
        return self.registry.lookup(name)

    def set_session_manager(self, manager: Any) -> "Authenticator":
        """Swap in a different session lifecycle manager (login/logout coroutines)."""
        self.session_manager = manager
        return self

    # ------------------------------------------------------------------
    # Per-request entry points
    # ------------------------------------------------------------------

    def context(
        self,
        request: Any = None,
        session: Any = None,
        *,
        flash: Optional[Callable[[str, str], None]] = None,
        user_property: Optional[str] = None,
    ) -> RequestContext:
        """Build the RequestContext for one request, bound to this authenticator's session manager."""
        return RequestContext(
            request,
            session,
            session_manager=self.session_manager,
            user_property=user_property or self.user_property,
            flash=flash,
        )

    def authenticate(
        self,
        strategies: Any,
        options: Any = None,
        callback: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> Authenticate:
        """Return an Authenticate step for one strategy reference or a list of them.

        Options may be an AuthenticateOptions, a mapping, and/or keyword arguments.
        """
        return Authenticate(self, strategies, AuthenticateOptions.build(options, **kwargs), callback)

    def authorize(
        self,
        strategies: Any,
        options: Any = None,
        callback: Optional[Callable[..., Any]] = None,
        **kwargs: Any,
    ) -> Authenticate:
        """Like authenticate(), but assigns the principal to "account" without touching the session.

        Used to connect a third-party account to an already-logged-in user.
        """
        kwargs["assign_property"] = "account"
        return self.authenticate(strategies, options, callback, **kwargs)

    def session(self, options: Any = None, **kwargs: Any) -> Authenticate:
        """Shortcut for authenticate("session")."""
        return self.authenticate("session", options, **kwargs)

    # ------------------------------------------------------------------
    # Codec registration (usable as decorators) and runners
    # ------------------------------------------------------------------

    def serialize_user(self, handler: Any = None, *, with_request: bool = False) -> Any:
        return self._register(self.codec.serializers, handler, with_request)

    def deserialize_user(self, handler: Any = None, *, with_request: bool = False) -> Any:
        return self._register(self.codec.deserializers, handler, with_request)

    def transform_auth_info(self, handler: Any = None, *, with_request: bool = False) -> Any:
        return self._register(self.codec.transformers, handler, with_request)

    @staticmethod
    def _register(chain: Any, handler: Any, with_request: bool) -> Any:
        if handler is None:

            def decorator(fn: Any) -> Any:
                chain.register(fn, with_context=with_request)
                return fn

            return decorator
        chain.register(handler, with_context=with_request)
        return handler

    async def serialize(self, principal: Any, context: Any = None) -> Any:
        return await self.codec.serialize(principal, context)

    async def deserialize(self, identifier: Any, context: Any = None) -> Any:
        return await self.codec.deserialize(identifier, context)

    async def transform(self, info: Any, context: Any = None) -> Any:
        return await self.codec.transform(info, context)
