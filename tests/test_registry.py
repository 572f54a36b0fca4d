"""Unit tests for core/registry.py and strategy registration on the Authenticator.

Covers:
- Name taken from strategy.name, or an explicit name overriding it
- Unnamed strategies rejected with ConfigurationError
- Last write wins on re-registration
- unregister() is silent for unknown names
- Every Authenticator ships the "session" strategy
"""

import pytest

from core.authenticator import Authenticator
from core.errors import ConfigurationError
from core.registry import StrategyRegistry
from core.session_strategy import SessionStrategy
from core.strategy import BaseStrategy, Strategy


class _Named(BaseStrategy):
    name = "named"

    def authenticate(self, context, options, outcome):
        outcome.pass_()


class _Unnamed(BaseStrategy):
    def authenticate(self, context, options, outcome):
        outcome.pass_()


def test_register_uses_strategy_name():
    registry = StrategyRegistry()
    strategy = _Named()
    assert registry.register(strategy) == "named"
    assert registry.lookup("named") is strategy
    assert "named" in registry


def test_explicit_name_overrides_strategy_name():
    registry = StrategyRegistry()
    strategy = _Named()
    registry.register(strategy, "alias")
    assert registry.lookup("alias") is strategy
    assert registry.lookup("named") is None


def test_register_without_name_raises():
    registry = StrategyRegistry()
    with pytest.raises(ConfigurationError, match="Authentication strategies must have a name"):
        registry.register(_Unnamed())
    assert len(registry) == 0


def test_last_registration_wins():
    registry = StrategyRegistry()
    first, second = _Named(), _Named()
    registry.register(first)
    registry.register(second)
    assert registry.lookup("named") is second
    assert registry.names() == ["named"]


def test_unregister_unknown_name_is_silent():
    registry = StrategyRegistry()
    registry.register(_Named())
    registry.unregister("missing")
    registry.unregister("named")
    assert registry.lookup("named") is None


def test_strategy_protocol_is_structural():
    class Duck:
        def authenticate(self, context, options, outcome):
            outcome.pass_()

    assert isinstance(Duck(), Strategy)
    assert not isinstance(object(), Strategy)


def test_authenticator_registers_session_strategy():
    authenticator = Authenticator()
    assert isinstance(authenticator.strategy("session"), SessionStrategy)


def test_authenticator_use_and_unuse_chain():
    authenticator = Authenticator()
    assert authenticator.use(_Named()).use(_Named(), "other") is authenticator
    assert authenticator.strategy("other") is not None
    authenticator.unuse("other")
    assert authenticator.strategy("other") is None
