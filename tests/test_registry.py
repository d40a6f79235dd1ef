"""Tests for MethodRegistry."""

from __future__ import annotations

from typing import Any

from rpc_channel.method import MethodDefinition, MethodInfo
from rpc_channel.registry import MethodRegistry
from rpc_channel.validation import PydanticValidator

ANY = PydanticValidator(Any)


def _define(
    method_id: str, target_id: str = "server", result: Any = None
) -> MethodDefinition:
    return MethodDefinition(method_id, target_id, ANY, ANY, lambda _: result)


def test_lookup_by_target_and_method() -> None:
    registry = MethodRegistry()
    definition = _define("user.get")
    registry.publish(definition)
    assert registry.lookup("server", "user.get") is definition
    assert registry.lookup("other", "user.get") is None
    assert ("server", "user.get") in registry


def test_same_method_id_for_different_targets() -> None:
    registry = MethodRegistry()
    registry.publish(_define("ping", "a"))
    registry.publish(_define("ping", "b"))
    assert len(registry) == 2


def test_keys_with_dots_do_not_collide() -> None:
    registry = MethodRegistry()
    registry.publish(_define("c", "a.b"))
    registry.publish(_define("b.c", "a"))
    assert len(registry) == 2
    assert registry.lookup("a.b", "c") is not registry.lookup("a", "b.c")


def test_last_write_wins() -> None:
    registry = MethodRegistry()
    first, second = _define("ping", result=1), _define("ping", result=2)
    registry.publish(first)
    registry.publish(second)
    assert len(registry) == 1
    assert registry.lookup("server", "ping") is second


def test_snapshot_lists_short_names_in_publish_order() -> None:
    registry = MethodRegistry()
    registry.publish(_define("user.get"))
    registry.publish(_define("user.create"))
    assert registry.snapshot() == [
        MethodInfo(id="user.get", name="get"),
        MethodInfo(id="user.create", name="create"),
    ]


def test_clear() -> None:
    registry = MethodRegistry()
    registry.publish(_define("ping"))
    registry.clear()
    assert len(registry) == 0
