"""Tests for MessageSerializer."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from rpc_channel.envelope import MessageType, RPCMessage
from rpc_channel.primitives.exceptions import MessageSerializationError
from rpc_channel.serialization import MessageSerializer


@pytest.fixture
def serializer() -> MessageSerializer:
    return MessageSerializer()


def _message(payload: object = None) -> RPCMessage:
    return RPCMessage(
        caller_id="a",
        target_id="b",
        trace_id="t-1",
        method_id="m",
        payload=payload,
        type=MessageType.RESPONSE,
    )


def test_serialize_produces_camel_case_json(serializer: MessageSerializer) -> None:
    data = json.loads(serializer.serialize(_message({"x": 1})))
    assert data["traceId"] == "t-1"
    assert data["type"] == "response"
    assert data["payload"] == {"x": 1}


def test_datetime_payload_is_iso_formatted(serializer: MessageSerializer) -> None:
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    data = json.loads(serializer.serialize(_message({"at": when})))
    assert data["payload"]["at"].startswith("2024-01-02T03:04:05")


def test_deserialize_accepts_bytes(serializer: MessageSerializer) -> None:
    raw = serializer.serialize(_message("hi")).encode("utf-8")
    assert serializer.deserialize(raw) == _message("hi")


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        b"\xff\xfe",
        json.dumps({"traceId": "t-1"}),
        json.dumps({**_message().to_wire(), "type": "bogus"}),
    ],
)
def test_deserialize_rejects_malformed_frames(
    serializer: MessageSerializer, raw: str | bytes
) -> None:
    with pytest.raises(MessageSerializationError):
        serializer.deserialize(raw)
