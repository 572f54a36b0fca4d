"""Unit tests for the serialize / deserialize / transform chains in core/codec.py.

Covers:
- First non-pass result wins; later handlers are not called
- serialize keeps falsy-but-valid identifiers (0)
- deserialize: None and False mean "no principal"; PASS and other falsy results defer
- Exhaustion: serialize/deserialize raise, transform echoes the input
- WithContext handlers receive the request context
- Async handlers and decorator registration on the Authenticator
"""

import asyncio

import pytest

from core.authenticator import Authenticator
from core.codec import PASS, DeserializeChain, SerializeChain, TransformChain, WithContext, WithoutContext
from core.errors import ChainExhaustedError, ConfigurationError

# ---------------------------------------------------------------------------
# serialize
# ---------------------------------------------------------------------------


def test_serialize_returns_identifier():
    chain = SerializeChain()
    chain.register(lambda user: user["id"])
    assert asyncio.run(chain.run({"id": 7})) == 7


def test_serialize_zero_is_a_valid_identifier():
    chain = SerializeChain()
    later = []
    chain.register(lambda user: user["id"])
    chain.register(lambda user: later.append(user) or "unreachable")
    assert asyncio.run(chain.run({"id": 0})) == 0
    assert later == []


def test_serialize_none_and_pass_continue():
    chain = SerializeChain()
    chain.register(lambda user: None)
    chain.register(lambda user: PASS)
    chain.register(lambda user: "third")
    assert asyncio.run(chain.run({"id": 1})) == "third"


def test_serialize_exhausted_raises():
    chain = SerializeChain()
    chain.register(lambda user: PASS)
    with pytest.raises(ChainExhaustedError, match="Failed to serialize user into session"):
        asyncio.run(chain.run({"id": 1}))


def test_serialize_handler_error_propagates():
    def boom(user):
        raise RuntimeError("db down")

    chain = SerializeChain()
    chain.register(boom)
    chain.register(lambda user: 1)
    with pytest.raises(RuntimeError, match="db down"):
        asyncio.run(chain.run({"id": 1}))


# ---------------------------------------------------------------------------
# deserialize
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("result", [None, False])
def test_deserialize_no_principal_short_circuits(result):
    chain = DeserializeChain()
    later = []
    chain.register(lambda ident: result)
    chain.register(lambda ident: later.append(ident) or {"id": ident})
    assert asyncio.run(chain.run(3)) is False
    assert later == []


def test_deserialize_pass_defers_to_next_handler():
    chain = DeserializeChain()
    chain.register(lambda ident: PASS)
    chain.register(lambda ident: {"id": ident})
    assert asyncio.run(chain.run(3)) == {"id": 3}


@pytest.mark.parametrize("result", [0, ""])
def test_deserialize_other_falsy_results_continue(result):
    chain = DeserializeChain()
    chain.register(lambda ident: result)
    chain.register(lambda ident: {"id": ident})
    assert asyncio.run(chain.run(3)) == {"id": 3}


def test_deserialize_only_falsy_results_exhaust():
    chain = DeserializeChain()
    chain.register(lambda ident: 0)
    with pytest.raises(ChainExhaustedError):
        asyncio.run(chain.run(3))


def test_deserialize_exhausted_raises():
    chain = DeserializeChain()
    with pytest.raises(ChainExhaustedError, match="Failed to deserialize user out of session"):
        asyncio.run(chain.run(3))


# ---------------------------------------------------------------------------
# transform
# ---------------------------------------------------------------------------


def test_transform_exhaustion_returns_input():
    chain = TransformChain()
    chain.register(lambda info: None)
    info = {"scope": "read"}
    assert asyncio.run(chain.run(info)) is info


def test_transform_first_result_wins():
    chain = TransformChain()
    chain.register(lambda info: PASS)
    chain.register(lambda info: {**info, "seen": True})
    assert asyncio.run(chain.run({"scope": "read"})) == {"scope": "read", "seen": True}


# ---------------------------------------------------------------------------
# Handler variants
# ---------------------------------------------------------------------------


def test_with_context_handler_receives_context():
    seen = []
    chain = SerializeChain()
    chain.register(WithContext(lambda ctx, user: seen.append(ctx) or user["id"]))
    assert asyncio.run(chain.run({"id": 5}, "ctx")) == 5
    assert seen == ["ctx"]


def test_bare_callable_registers_without_context():
    chain = SerializeChain()
    handler = chain.register(lambda user: 1)
    assert isinstance(handler, WithoutContext)
    assert isinstance(chain.register(lambda ctx, user: 1, with_context=True), WithContext)


def test_async_handler_is_awaited():
    async def load(ident):
        await asyncio.sleep(0)
        return {"id": ident}

    chain = DeserializeChain()
    chain.register(load)
    assert asyncio.run(chain.run(9)) == {"id": 9}


def test_non_callable_handler_rejected():
    with pytest.raises(ConfigurationError):
        SerializeChain().register("not callable")


def test_authenticator_decorators_register_handlers():
    authenticator = Authenticator()

    @authenticator.serialize_user
    def user_id(user):
        return user["id"]

    @authenticator.deserialize_user(with_request=True)
    def load(ctx, ident):
        return {"id": ident, "ctx": ctx}

    @authenticator.transform_auth_info
    def scope(info):
        return {"scope": info.get("scope", "none")}

    assert user_id({"id": 2}) == 2
    assert asyncio.run(authenticator.serialize({"id": 2})) == 2
    assert asyncio.run(authenticator.deserialize(2, "ctx")) == {"id": 2, "ctx": "ctx"}
    assert asyncio.run(authenticator.transform({})) == {"scope": "none"}
