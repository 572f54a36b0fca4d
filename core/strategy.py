"""
core/strategy.py -- The strategy contract and the per-attempt outcome capability.

A strategy is any object with an `authenticate(context, options, outcome)`
method, sync or async. It must report exactly one result on the Outcome it is
handed:

    outcome.success(principal, info=None)
    outcome.fail(challenge=None, status=None)
    outcome.redirect(url, status=302)
    outcome.pass_()
    outcome.error(err)

The orchestrator creates a fresh Outcome for every attempt, so a single
strategy instance can serve concurrent requests without sharing state.

An Outcome resolves an asyncio future. A strategy may report after its
authenticate() coroutine has returned (e.g. from a scheduled callback); the
orchestrator keeps waiting until something is reported. There is no timeout:
a strategy that never reports leaves the request pending.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger("gatehouse.core.strategy")


@runtime_checkable
class Strategy(Protocol):
    """Structural type for authentication strategies.

    `name` is optional for strategies passed inline to authenticate(); the
    registry requires it (or an explicit name) at registration time.
    """

    def authenticate(self, context: Any, options: Any, outcome: "Outcome") -> Any: ...


class BaseStrategy:
    """Convenience base class. Subclasses set `name` and implement authenticate()."""

    name: Optional[str] = None

    def authenticate(self, context: Any, options: Any, outcome: "Outcome") -> Any:
        raise NotImplementedError


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    FAIL = "fail"
    REDIRECT = "redirect"
    PASS = "pass"
    ERROR = "error"


class Outcome:
    """Collects the single result a strategy reports for one attempt."""

    def __init__(self, strategy_name: Optional[str] = None) -> None:
        self.strategy_name = strategy_name
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def reported(self) -> bool:
        return self._future.done()

    def success(self, principal: Any, info: Any = None) -> None:
        self._report(OutcomeKind.SUCCESS, principal, info)

    def fail(self, challenge: Any = None, status: Optional[int] = None) -> None:
        # fail(403) means "status 403, no challenge"
        if isinstance(challenge, int) and not isinstance(challenge, bool) and status is None:
            challenge, status = None, challenge
        self._report(OutcomeKind.FAIL, challenge, status)

    def redirect(self, url: str, status: Optional[int] = None) -> None:
        self._report(OutcomeKind.REDIRECT, url, status if status is not None else 302)

    def pass_(self) -> None:
        self._report(OutcomeKind.PASS)

    def error(self, err: BaseException) -> None:
        self._report(OutcomeKind.ERROR, err)

    async def wait(self) -> tuple[OutcomeKind, tuple]:
        """Suspend until the strategy reports; returns (kind, args)."""
        return await self._future

    def _report(self, kind: OutcomeKind, *args: Any) -> None:
        if self._future.done():
            previous, _ = self._future.result()
            logger.warning(
                "Strategy %r reported %s after already reporting %s; ignored",
                self.strategy_name,
                kind.value,
                previous.value,
            )
            return
        self._future.set_result((kind, args))
