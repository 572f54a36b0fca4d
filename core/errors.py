"""
core/errors.py -- Error taxonomy for the authentication kernel.

Every error raised by core/ derives from GatehouseError so host code can catch
the whole family in one place. The orchestrator never lets these escape as raw
exceptions from a strategy attempt -- they are turned into an ERROR decision or
handed to the completion callback.

  ConfigurationError      -- bad registration, unknown strategy name. Fatal to
                             the current request, never retried.
  CapabilityMissingError  -- a collaborator (session store, flash handler) is
                             required but was not attached to the context.
  ChainExhaustedError     -- serialize/deserialize chain produced no result.
  StrategyReportedError   -- a strategy raised while authenticating.
  AuthenticationError     -- all strategies failed and fail_with_error is set.
"""

from __future__ import annotations


class GatehouseError(Exception):
    """Base class for all kernel errors."""


class ConfigurationError(GatehouseError):
    pass


class CapabilityMissingError(GatehouseError):
    pass


class ChainExhaustedError(GatehouseError):
    pass


class StrategyReportedError(GatehouseError):
    """Wraps an exception raised out of a strategy's authenticate().

    The original exception is kept as __cause__; `strategy` names the
    strategy that raised (None for unnamed inline strategies).
    """

    def __init__(self, message: str, strategy: str | None = None) -> None:
        super().__init__(message)
        self.strategy = strategy


class AuthenticationError(GatehouseError):
    """Forwarded to the host when every strategy failed and fail_with_error is set.

    `status` is the aggregate HTTP status (default 401). `challenges` holds the
    string challenges collected from the failed strategies, so a host error
    handler can emit WWW-Authenticate headers.
    """

    def __init__(self, message: str, status: int | None = 401, challenges: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status if status is not None else 401
        self.challenges = list(challenges or [])
