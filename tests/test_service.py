"""Tests for ServiceDefinition and ServiceClient."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from rpc_channel import (
    Channel,
    MethodSchema,
    PydanticValidator,
    RPCTimeoutError,
    ServiceClient,
    ServiceDefinition,
    ValidationError,
)
from rpc_channel.transports import InMemoryTransport


class GetUser(BaseModel):
    id: str


class User(BaseModel):
    id: str
    name: str


class Sum(BaseModel):
    a: int
    b: int


users = ServiceDefinition(
    "user",
    {
        "get": MethodSchema(PydanticValidator(GetUser), PydanticValidator(User)),
        "add": MethodSchema(PydanticValidator(Sum), PydanticValidator(int)),
    },
)


async def get_user(request: GetUser) -> User:
    return User(id=request.id, name=f"user-{request.id}")


def add(request: Sum) -> int:
    return request.a + request.b


def test_contracts_use_dotted_ids() -> None:
    contracts = users.contracts()
    assert set(contracts) == {"get", "add"}
    assert contracts["get"].id == "user.get"
    assert contracts["add"].short_name == "add"


def test_implement_binds_every_method() -> None:
    definitions = users.implement({"get": get_user, "add": add}, "server")
    assert {d.id for d in definitions} == {"user.get", "user.add"}
    assert all(d.target_id == "server" for d in definitions)


def test_implement_requires_every_handler() -> None:
    with pytest.raises(ValueError, match="add"):
        users.implement({"get": get_user}, "server")


def test_empty_service_id_rejected() -> None:
    with pytest.raises(ValueError):
        ServiceDefinition("", {})


def test_unknown_contract_name() -> None:
    with pytest.raises(KeyError):
        users.contract("delete")


@pytest.mark.asyncio
async def test_client_calls_local_methods() -> None:
    channel = Channel("server")
    for definition in users.implement({"get": get_user, "add": add}, "server"):
        channel.publish_method(definition)
    client = ServiceClient(channel, users, "server")

    assert await client.get({"id": "7"}) == User(id="7", name="user-7")
    assert await client.add({"a": 2, "b": 3}) == 5


@pytest.mark.asyncio
async def test_client_calls_remote_methods() -> None:
    left, right = InMemoryTransport.pair()
    server = Channel("server")
    for definition in users.implement({"get": get_user, "add": add}, "server"):
        server.publish_method(definition)
    caller = Channel("client")
    await server.connect(right)
    await caller.connect(left)

    client = ServiceClient(caller, users, "server")
    assert await client.get({"id": "1"}) == User(id="1", name="user-1")
    await caller.disconnect()
    await server.disconnect()


@pytest.mark.asyncio
async def test_client_validates_input_before_sending() -> None:
    left, _ = InMemoryTransport.pair()
    caller = Channel("client")
    await caller.connect(left)
    client = ServiceClient(caller, users, "server")

    with pytest.raises(ValidationError):
        await client.add({"a": "x", "b": 1})
    assert left.get_sent() == []


@pytest.mark.asyncio
async def test_client_timeout_and_target_overrides() -> None:
    left, _ = InMemoryTransport.pair()
    caller = Channel("client")
    await caller.connect(left)
    client = ServiceClient(caller, users, "server", timeout_ms=5000)

    with pytest.raises(RPCTimeoutError, match="20ms"):
        await client.get({"id": "1"}, timeout_ms=20, target="replica")
    assert left.get_sent()[0].target_id == "replica"
    assert left.get_sent()[0].method_id == "user.get"


def test_client_unknown_method_is_attribute_error() -> None:
    client = ServiceClient(Channel("client"), users, "server")
    with pytest.raises(AttributeError, match="delete"):
        client.delete  # noqa: B018
    assert "get" in dir(client)


def test_client_exposes_service_and_target() -> None:
    client = ServiceClient(Channel("client"), users, "server")
    assert client.service is users
    assert client.target_id == "server"



@pytest.mark.asyncio
async def test_client_zero_timeout_is_rejected_like_invoke() -> None:
    left, _ = InMemoryTransport.pair()
    caller = Channel("client")
    await caller.connect(left)

    with pytest.raises(ValueError, match="timeout_ms"):
        await ServiceClient(caller, users, "server").get({"id": "1"}, timeout_ms=0)
    with pytest.raises(ValueError, match="timeout_ms"):
        await ServiceClient(caller, users, "server", timeout_ms=0).get({"id": "1"})
    assert left.get_sent() == []
