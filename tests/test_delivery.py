"""
Unit tests for unicast/broadcast delivery, driven with stand-in sockets.
Run with:  pytest tests/
"""

from __future__ import annotations

import asyncio

import pytest
from starlette.websockets import WebSocketState

from ecg_stream.delivery import (
    BroadcastDelivery,
    ConnectionRegistry,
    UnicastDelivery,
    make_delivery,
)


class StubSocket:
    """Records sent text; optionally fails or stalls on send."""

    def __init__(self, state=WebSocketState.CONNECTED, error=None, delay=0.0):
        self.application_state = state
        self.error = error
        self.delay = delay
        self.sent = []

    async def send_text(self, text):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append(text)


def _registry(*sockets):
    registry = ConnectionRegistry()
    for ws in sockets:
        registry.add(ws)
    return registry


class TestUnicast:

    def test_only_origin_receives(self):
        origin, other = StubSocket(), StubSocket()
        asyncio.run(UnicastDelivery().deliver(origin, "rec"))
        assert origin.sent == ["rec"]
        assert other.sent == []


class TestBroadcast:

    def test_mixed_peers(self):
        origin = StubSocket()
        healthy = StubSocket()
        failing = StubSocket(error=RuntimeError("socket closed"))
        connecting = StubSocket(state=WebSocketState.CONNECTING)
        gone = StubSocket(state=WebSocketState.DISCONNECTED)
        registry = _registry(origin, healthy, failing, connecting, gone)

        asyncio.run(BroadcastDelivery(registry).deliver(origin, "rec"))

        assert origin.sent == ["rec"]
        assert healthy.sent == ["rec"]
        assert connecting.sent == []
        assert gone.sent == []
        assert origin in registry
        assert healthy in registry
        assert connecting in registry
        assert failing not in registry
        assert gone not in registry
        assert len(registry) == 3

    def test_os_error_drops_peer(self):
        origin, broken = StubSocket(), StubSocket(error=ConnectionResetError())
        registry = _registry(origin, broken)
        asyncio.run(BroadcastDelivery(registry).deliver(origin, "rec"))
        assert broken not in registry
        assert origin.sent == ["rec"]

    def test_slow_peer_dropped_without_blocking(self):
        origin = StubSocket()
        fast = StubSocket()
        slow = StubSocket(delay=5.0)
        registry = _registry(origin, fast, slow)
        delivery = BroadcastDelivery(registry, send_timeout=0.05)

        async def timed():
            loop = asyncio.get_running_loop()
            start = loop.time()
            await delivery.deliver(origin, "rec")
            return loop.time() - start

        elapsed = asyncio.run(timed())
        assert elapsed < 1.0
        assert origin.sent == ["rec"]
        assert fast.sent == ["rec"]
        assert slow.sent == []
        assert slow not in registry

    def test_origin_failure_propagates(self):
        origin = StubSocket(error=RuntimeError("origin closed"))
        peer = StubSocket()
        registry = _registry(origin, peer)
        with pytest.raises(RuntimeError):
            asyncio.run(BroadcastDelivery(registry).deliver(origin, "rec"))

    def test_unregistered_origin_still_receives(self):
        origin, peer = StubSocket(), StubSocket()
        registry = _registry(peer)
        asyncio.run(BroadcastDelivery(registry).deliver(origin, "rec"))
        assert origin.sent == ["rec"]
        assert peer.sent == ["rec"]


class TestFactory:

    def test_policies(self):
        registry = ConnectionRegistry()
        assert make_delivery("unicast", registry).name == "unicast"
        broadcast = make_delivery("broadcast", registry)
        assert broadcast.name == "broadcast"
        assert broadcast.registry is registry

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            make_delivery("multicast", ConnectionRegistry())
