"""
core/sessions.py -- Session store contract and the session lifecycle manager.

Session fixation defense:

  login   regenerate -> serialize -> (merge old data) -> write identity -> save
  logout  clear identity -> save -> regenerate -> (merge old data -> save)

Login regenerates BEFORE the identity is written, so an attacker-fixed
session ID never carries a victim's identity. Logout persists the cleared
record BEFORE regenerating, so a half-completed regenerate cannot resurrect
the old identity.

Session stores are external collaborators. Anything implementing Session
(mapping access + async regenerate() + async save()) can be attached to a
RequestContext. MemorySessionStore / MemorySession are a dict-backed store
for single-process hosts and tests.
"""

from __future__ import annotations

import copy
import logging
import secrets
from abc import abstractmethod
from collections.abc import Awaitable, Callable, Iterator, Mapping, MutableMapping
from typing import Any, Optional

from core.errors import CapabilityMissingError
from core.models import AuthenticateOptions

logger = logging.getLogger("gatehouse.core.sessions")

DEFAULT_KEY = "passport"

_NO_SESSION = "Login sessions require session support. Attach a session store to the request context."


class Session(MutableMapping):
    """A mutable session record with regenerate/save primitives."""

    @abstractmethod
    async def regenerate(self) -> None:
        """Discard the current record and allocate a fresh session identity."""

    @abstractmethod
    async def save(self) -> None:
        """Persist the current record."""

    def snapshot(self) -> dict:
        """Deep copy of the current record, detached from later mutation."""
        return copy.deepcopy(dict(self))


# ---------------------------------------------------------------------------
# In-process store
# ---------------------------------------------------------------------------


class MemorySessionStore:
    """Session records keyed by a random session ID, held in process memory."""

    def __init__(self) -> None:
        self._records: dict[str, dict] = {}

    def new_id(self) -> str:
        return secrets.token_urlsafe(24)

    def load(self, sid: str) -> Optional[dict]:
        record = self._records.get(sid)
        return copy.deepcopy(record) if record is not None else None

    def persist(self, sid: str, data: Mapping) -> None:
        self._records[sid] = copy.deepcopy(dict(data))

    def destroy(self, sid: str) -> None:
        self._records.pop(sid, None)

    def open(self, sid: Optional[str] = None) -> "MemorySession":
        return MemorySession(self, sid)

    def __contains__(self, sid: object) -> bool:
        return sid in self._records

    def __len__(self) -> int:
        return len(self._records)


class MemorySession(Session):
    def __init__(self, store: MemorySessionStore, sid: Optional[str] = None) -> None:
        self._store = store
        data = store.load(sid) if sid else None
        if data is None:
            sid = store.new_id()
            data = {}
        self.id: str = sid
        self._data: dict = data

    async def regenerate(self) -> None:
        self._store.destroy(self.id)
        self.id = self._store.new_id()
        self._data = {}

    async def save(self) -> None:
        self._store.persist(self.id, self._data)

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


# ---------------------------------------------------------------------------
# Lifecycle manager
# ---------------------------------------------------------------------------


def _merge(session: Session, previous: Mapping) -> None:
    for key, value in previous.items():
        session[key] = value


class SessionManager:
    """Writes and clears the authenticated identity in the request's session.

    `serialize` is the codec's serialize runner: an async callable taking
    (principal, context) and returning the identifier to store.
    """

    def __init__(self, serialize: Callable[[Any, Any], Awaitable[Any]], key: str = DEFAULT_KEY) -> None:
        self.key = key or DEFAULT_KEY
        self._serialize = serialize

    async def login(self, context: Any, principal: Any, options: Any = None) -> None:
        """Establish a login session for principal.

        Raises CapabilityMissingError when the context has no session, and
        propagates regenerate, serialize and save errors unchanged.
        """
        options = AuthenticateOptions.build(options)
        session: Optional[Session] = context.session
        if session is None:
            raise CapabilityMissingError(_NO_SESSION)

        previous = session.snapshot()
        await session.regenerate()

        identifier = await self._serialize(principal, context)

        if options.keep_session_info:
            _merge(session, previous)

        existing = session.get(self.key)
        record = dict(existing) if isinstance(existing, Mapping) else {}
        record["user"] = identifier
        session[self.key] = record

        await session.save()
        logger.debug("Session login complete (key=%s)", self.key)

    async def logout(self, context: Any, options: Any = None) -> None:
        """Terminate the login session, persisting the cleared identity first."""
        options = AuthenticateOptions.build(options)
        session: Optional[Session] = context.session
        if session is None:
            raise CapabilityMissingError(_NO_SESSION)

        record = session.get(self.key)
        if isinstance(record, MutableMapping) and "user" in record:
            del record["user"]
            session[self.key] = record

        previous = session.snapshot()
        await session.save()
        await session.regenerate()

        if options.keep_session_info:
            _merge(session, previous)
            await session.save()
        logger.debug("Session logout complete (key=%s)", self.key)
