from __future__ import annotations

import pytest

from rot13filter.constants import DELAY_FIXTURES
from rot13filter.delay import DelayRegistry, DelayState


def test_fixtures_seeded():
    reg = DelayRegistry.with_fixtures()
    assert len(reg) == len(DELAY_FIXTURES)
    assert reg.get("test-delay20.a").count == 2
    assert reg.get("test-delay10.a").state is DelayState.NOT_REQUESTED
    assert reg.get("other.a") is None


def test_seed_twice():
    reg = DelayRegistry()
    reg.seed("X", 1)
    with pytest.raises(ValueError):
        reg.seed("X", 2)


def test_request_once():
    reg = DelayRegistry.with_fixtures()
    assert reg.request("test-delay10.a") is True
    assert reg.get("test-delay10.a").state is DelayState.PENDING
    assert reg.request("test-delay10.a") is False

    reg.mark_delivered("test-delay10.a", b"out")
    assert reg.request("test-delay10.a") is False
    assert reg.get("test-delay10.a").state is DelayState.DELIVERED
    assert reg.get("test-delay10.a").output == b"out"


def test_request_unknown():
    reg = DelayRegistry()
    assert reg.request("new.a") is False
    assert "new.a" not in reg

    assert reg.request("new.a", always_delay=True) is True
    entry = reg.get("new.a")
    assert entry.count == 1
    assert entry.state is DelayState.PENDING


def test_requested_entries_order():
    reg = DelayRegistry.with_fixtures()
    reg.request("test-delay20.a")
    reg.request("test-delay10.a")
    assert [name for name, _ in reg.requested_entries()] == ["test-delay10.a", "test-delay20.a"]


def test_clear():
    reg = DelayRegistry.with_fixtures()
    reg.clear()
    assert len(reg) == 0
