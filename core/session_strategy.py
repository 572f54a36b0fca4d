"""
core/session_strategy.py -- Restores a login session established by SessionManager.

Registered under the name "session" by every Authenticator. It never fails:
when there is no stored identifier, or the identifier no longer maps to a
principal, the request simply continues unauthenticated.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any

from core.errors import CapabilityMissingError
from core.sessions import DEFAULT_KEY
from core.strategy import BaseStrategy, Outcome

logger = logging.getLogger("gatehouse.core.session_strategy")


class SessionStrategy(BaseStrategy):
    name = "session"

    def __init__(self, deserialize: Callable[[Any, Any], Awaitable[Any]], key: str = DEFAULT_KEY) -> None:
        self._deserialize = deserialize
        self._key = key or DEFAULT_KEY

    async def authenticate(self, context: Any, options: Any, outcome: Outcome) -> None:
        session = context.session
        if session is None:
            outcome.error(
                CapabilityMissingError(
                    "Login sessions require session support. Attach a session store to the request context."
                )
            )
            return

        record = session.get(self._key)
        identifier = record.get("user") if isinstance(record, MutableMapping) else None
        if identifier is None:
            outcome.pass_()
            return

        # ASGI request bodies are not consumed until read, so pause_stream
        # needs no buffering here.
        try:
            principal = await self._deserialize(identifier, context)
        except Exception as exc:
            outcome.error(exc)
            return

        if principal is not False:
            context.user = principal
        else:
            logger.debug("Stored identifier no longer resolves; dropping it from the session")
            del record["user"]
            session[self._key] = record
        outcome.pass_()
