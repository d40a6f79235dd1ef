"""Shared fixtures: validators and a pair of channels linked in memory."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from rpc_channel import Channel, MethodDefinition, PydanticValidator
from rpc_channel.transports import InMemoryTransport

from .schemas import EchoInput, EchoOutput


@pytest.fixture
def echo_in() -> PydanticValidator[EchoInput]:
    return PydanticValidator(EchoInput)


@pytest.fixture
def echo_out() -> PydanticValidator[EchoOutput]:
    return PydanticValidator(EchoOutput)


@pytest.fixture
def echo_method(
    echo_in: PydanticValidator[EchoInput], echo_out: PydanticValidator[EchoOutput]
) -> MethodDefinition:
    async def echo(payload: EchoInput) -> EchoOutput:
        return {"echo": f"Echo: {payload['message']}"}

    return MethodDefinition(
        id="echo",
        target_id="service2",
        input_validator=echo_in,
        output_validator=echo_out,
        handler=echo,
    )


@pytest.fixture
def transports() -> tuple[InMemoryTransport, InMemoryTransport]:
    return InMemoryTransport.pair("service1", "service2")


@pytest_asyncio.fixture
async def linked_channels(
    transports: tuple[InMemoryTransport, InMemoryTransport],
    echo_method: MethodDefinition,
) -> AsyncIterator[tuple[Channel, Channel]]:
    """``service1`` (caller) linked to ``service2`` which serves ``echo``."""
    left, right = transports
    caller = Channel("service1", default_timeout_ms=1000)
    server = Channel("service2", default_timeout_ms=1000)
    server.publish_method(echo_method)
    await server.connect(right)
    await caller.connect(left)
    yield caller, server
    await caller.disconnect()
    await server.disconnect()
