"""Tests for method records and contracts."""

from __future__ import annotations

from typing import Any

import pytest

from rpc_channel.method import (
    MethodContract,
    MethodDefinition,
    call_handler,
    short_name,
)
from rpc_channel.validation import PydanticValidator

STR = PydanticValidator(str)


def _handler(value: Any) -> Any:
    return value


@pytest.mark.parametrize(
    ("method_id", "expected"),
    [("user.get", "get"), ("a.b.c", "c"), ("echo", "echo")],
)
def test_short_name(method_id: str, expected: str) -> None:
    assert short_name(method_id) == expected


def test_definition_rejects_empty_ids() -> None:
    with pytest.raises(ValueError, match="id"):
        MethodDefinition("", "server", STR, STR, _handler)
    with pytest.raises(ValueError, match="target_id"):
        MethodDefinition("user.get", "", STR, STR, _handler)


def test_definition_key_is_a_tuple() -> None:
    definition = MethodDefinition("user.get", "server", STR, STR, _handler)
    assert definition.key == ("server", "user.get")
    assert definition.short_name == "get"


def test_contract_implement_binds_target_and_handler() -> None:
    contract = MethodContract("user.get", STR, STR)
    definition = contract.implement(_handler, "server")
    assert definition.id == "user.get"
    assert definition.target_id == "server"
    assert definition.input_validator is STR
    assert definition.handler is _handler


def test_contract_rejects_empty_id() -> None:
    with pytest.raises(ValueError):
        MethodContract("", STR, STR)


@pytest.mark.asyncio
async def test_call_handler_accepts_sync_and_async() -> None:
    async def doubled(value: int) -> int:
        return value * 2

    assert await call_handler(lambda v: v + 1, 1) == 2
    assert await call_handler(doubled, 2) == 4
