"""
core/registry.py -- Name -> strategy mapping.

Writes are expected during application setup only; requests just read.
Re-registering a name replaces the previous strategy (last write wins).
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import ConfigurationError
from core.strategy import Strategy

logger = logging.getLogger("gatehouse.core.registry")


class StrategyRegistry:
    """Holds the strategies an Authenticator can resolve by name.

    Usage:
        registry = StrategyRegistry()
        registry.register(LocalStrategy(verify))        # name taken from strategy.name
        registry.register(BearerStrategy(verify), "api")
        registry.lookup("api")
    """

    def __init__(self) -> None:
        self._strategies: dict[str, Strategy] = {}

    def register(self, strategy: Strategy, name: Optional[str] = None) -> str:
        """Register strategy under name (or strategy.name). Returns the name used.

        Raises ConfigurationError if no name can be determined.
        """
        if not name and strategy is not None:
            name = getattr(strategy, "name", None)
        if not name:
            raise ConfigurationError("Authentication strategies must have a name")
        if name in self._strategies:
            logger.debug("Replacing authentication strategy %r", name)
        self._strategies[name] = strategy
        return name

    def unregister(self, name: str) -> None:
        self._strategies.pop(name, None)

    def lookup(self, name: str) -> Optional[Strategy]:
        return self._strategies.get(name)

    def names(self) -> list[str]:
        return list(self._strategies)

    def __contains__(self, name: object) -> bool:
        return name in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)
