"""Tests for ReconnectPolicy."""

from __future__ import annotations

import pytest

from rpc_channel.retry import ReconnectPolicy


def test_defaults_double_from_one_second() -> None:
    policy = ReconnectPolicy()
    assert policy.max_attempts == 5
    assert [policy.delay_for_attempt(n) for n in range(5)] == [1.0, 2.0, 4.0, 8.0, 16.0]


def test_delay_is_capped() -> None:
    policy = ReconnectPolicy(base_delay=1.0, max_delay=5.0)
    assert policy.delay_for_attempt(10) == 5.0


def test_should_retry_bounds() -> None:
    policy = ReconnectPolicy(max_attempts=2)
    assert policy.should_retry(0)
    assert policy.should_retry(1)
    assert not policy.should_retry(2)
    assert not policy.should_retry(-1)


def test_jitter_stays_within_half_to_one_and_a_half() -> None:
    policy = ReconnectPolicy(base_delay=2.0, max_delay=2.0, jitter=True)
    for _ in range(50):
        assert 1.0 <= policy.delay_for_attempt(0) <= 3.0


def test_disabled_never_retries() -> None:
    assert not ReconnectPolicy.disabled().should_retry(0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": -1},
        {"base_delay": -1.0},
        {"base_delay": 10.0, "max_delay": 1.0},
    ],
)
def test_invalid_configuration(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        ReconnectPolicy(**kwargs)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_wait_before_with_zero_delay_returns() -> None:
    await ReconnectPolicy(base_delay=0.0, max_delay=0.0).wait_before(0)
