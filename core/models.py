"""
core/models.py -- Plain data shapes shared by the orchestration kernel.

Pattern: Data class (pure data container, almost no logic). The orchestrator,
session manager and framework adapters pass these around; none of them own
behaviour beyond trivial constructors.

Layer rule: no imports from auth/ or api/.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional

# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


@dataclass
class AuthenticateOptions:
    """Options recognized by the orchestrator for one authenticate() call.

    Strategy-specific keys that the orchestrator does not understand are kept
    in `extra` and handed to the strategy untouched.

    Flash settings accept True, a message string, or a {"type", "message"}
    mapping. Message settings accept True or a message string.
    """

    session: bool = True
    success_redirect: Optional[str] = None
    success_return_to_or_redirect: Optional[str] = None
    failure_redirect: Optional[str] = None
    fail_with_error: bool = False
    assign_property: Optional[str] = None
    auth_info: bool = True
    keep_session_info: bool = False
    pause_stream: bool = False
    success_flash: Any = None
    success_message: Any = None
    failure_flash: Any = None
    failure_message: Any = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def build(cls, options: Any = None, **overrides: Any) -> "AuthenticateOptions":
        """Normalize None, a mapping, or an existing instance into a fresh instance.

        Mapping keys may be snake_case or camelCase ("failureRedirect").
        Keyword overrides are applied last. The result never aliases the
        caller's object, so per-call tweaks (authorize()) cannot leak.
        """
        if isinstance(options, AuthenticateOptions):
            base = replace(options, extra=dict(options.extra))
            values: dict[str, Any] = {}
        else:
            base = cls()
            values = dict(options or {})
        values.update(overrides)

        known = {f.name for f in fields(cls)} - {"extra"}
        updates: dict[str, Any] = {}
        for key, value in values.items():
            name = key if key in known else _snake(key)
            if name in known:
                updates[name] = value
            elif key == "extra" and isinstance(value, Mapping):
                base.extra.update(value)
            else:
                base.extra[key] = value
        return replace(base, **updates)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a strategy-specific option from `extra`, falling back to known fields."""
        if key in self.extra:
            return self.extra[key]
        return getattr(self, key, default)


# ---------------------------------------------------------------------------
# Per-pass records
# ---------------------------------------------------------------------------


@dataclass
class Failure:
    """One strategy's fail() report, kept for the lifetime of one orchestration pass."""

    challenge: Any = None
    status: Optional[int] = None


@dataclass
class HttpResponse:
    """A framework-neutral response the host adapter must write as-is.

    headers is a list of pairs because WWW-Authenticate may repeat.
    """

    status: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """Return the first header value matching name (case-insensitive)."""
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        return [value for key, value in self.headers if key.lower() == name.lower()]


class DecisionKind(str, Enum):
    CONTINUE = "continue"  # hand control back to the host pipeline
    RESPOND = "respond"  # write `response` and stop
    ERROR = "error"  # route `error` to the host's error channel
    DELEGATED = "delegated"  # the completion callback took over; `result` is its return value


@dataclass
class Decision:
    """Terminal result of one orchestration pass."""

    kind: DecisionKind
    response: Optional[HttpResponse] = None
    error: Optional[BaseException] = None
    result: Any = None

    @classmethod
    def proceed(cls) -> "Decision":
        return cls(DecisionKind.CONTINUE)

    @classmethod
    def respond(cls, response: HttpResponse) -> "Decision":
        return cls(DecisionKind.RESPOND, response=response)

    @classmethod
    def fail(cls, error: BaseException) -> "Decision":
        return cls(DecisionKind.ERROR, error=error)

    @classmethod
    def delegated(cls, result: Any) -> "Decision":
        return cls(DecisionKind.DELEGATED, result=result)
