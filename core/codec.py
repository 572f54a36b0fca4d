"""
core/codec.py -- Principal serialization pipeline.

Three ordered, first-match-wins handler chains:

  serialize    principal  -> storable identifier (kept in the session)
  deserialize  identifier -> principal
  transform    auth info  -> auth info exposed to the host

Handlers are registered explicitly as one of two variants:

  WithoutContext(fn)   fn(value)
  WithContext(fn)      fn(context, value)   -- receives the RequestContext

Registering a bare callable is the same as WithoutContext(fn). A handler may
return its result directly or return an awaitable. Returning the PASS
sentinel hands the value to the next handler. A raised exception aborts the
chain and propagates out of run().

Result rules differ per chain and must not be unified:

  serialize    None/PASS continue. Any other value ends the chain, 0 included.
               Exhaustion raises ChainExhaustedError.
  deserialize  PASS continues. None/False end the chain with False ("no
               principal", not an error). Other falsy results (0, "") continue.
               Exhaustion raises ChainExhaustedError.
  transform    None/PASS continue. Exhaustion returns the input unchanged.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional, Union

from core.errors import ChainExhaustedError, ConfigurationError


class _Pass:
    """Sentinel a handler returns to defer to the next handler."""

    def __repr__(self) -> str:
        return "PASS"


PASS = _Pass()


@dataclass(frozen=True)
class WithoutContext:
    fn: Callable[[Any], Any]


@dataclass(frozen=True)
class WithContext:
    fn: Callable[[Any, Any], Any]


Handler = Union[WithoutContext, WithContext]


class HandlerChain:
    """Ordered handler list shared by the three chains."""

    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def register(self, handler: Any, *, with_context: bool = False) -> Handler:
        """Append a handler. Bare callables are wrapped per `with_context`."""
        if not isinstance(handler, (WithContext, WithoutContext)):
            if not callable(handler):
                raise ConfigurationError(f"Chain handlers must be callable, got {handler!r}")
            handler = WithContext(handler) if with_context else WithoutContext(handler)
        self._handlers.append(handler)
        return handler

    @property
    def handlers(self) -> list[Handler]:
        return list(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    async def _invoke(self, handler: Handler, value: Any, context: Any) -> Any:
        if isinstance(handler, WithContext):
            result = handler.fn(context, value)
        else:
            result = handler.fn(value)
        if inspect.isawaitable(result):
            result = await result
        return result


class SerializeChain(HandlerChain):
    async def run(self, principal: Any, context: Any = None) -> Any:
        for handler in self._handlers:
            result = await self._invoke(handler, principal, context)
            if result is None or result is PASS:
                continue
            return result
        raise ChainExhaustedError("Failed to serialize user into session")


class DeserializeChain(HandlerChain):
    async def run(self, identifier: Any, context: Any = None) -> Any:
        for handler in self._handlers:
            result = await self._invoke(handler, identifier, context)
            if result is PASS:
                continue
            if result is None or result is False:
                return False
            if not result:
                continue
            return result
        raise ChainExhaustedError("Failed to deserialize user out of session")


class TransformChain(HandlerChain):
    async def run(self, info: Any, context: Any = None) -> Any:
        for handler in self._handlers:
            result = await self._invoke(handler, info, context)
            if result is None or result is PASS:
                continue
            return result
        return info


class PrincipalCodec:
    """Owns the serialize, deserialize and transform chains of one Authenticator."""

    def __init__(self) -> None:
        self.serializers = SerializeChain()
        self.deserializers = DeserializeChain()
        self.transformers = TransformChain()

    async def serialize(self, principal: Any, context: Optional[Any] = None) -> Any:
        return await self.serializers.run(principal, context)

    async def deserialize(self, identifier: Any, context: Optional[Any] = None) -> Any:
        return await self.deserializers.run(identifier, context)

    async def transform(self, info: Any, context: Optional[Any] = None) -> Any:
        return await self.transformers.run(info, context)
