"""
Where a processed record goes.

Unicast replies on the socket the sample came in on.  Broadcast fans
each record out to every connected socket via a shared
:class:`ConnectionRegistry`.  All of this runs on one asyncio loop, so
the registry needs no lock; fan-out iterates a snapshot so a peer
connecting or leaving mid-send does not disturb the loop.  Peers are
sent to concurrently, each under a timeout, so one stalled client
cannot hold up the sender or the other peers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Protocol, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Set of currently connected sockets."""

    def __init__(self) -> None:
        self._sockets: Set[WebSocket] = set()

    def add(self, ws: WebSocket) -> None:
        self._sockets.add(ws)

    def discard(self, ws: WebSocket) -> None:
        self._sockets.discard(ws)

    def snapshot(self) -> List[WebSocket]:
        return list(self._sockets)

    def __len__(self) -> int:
        return len(self._sockets)

    def __contains__(self, ws: object) -> bool:
        return ws in self._sockets


class Delivery(Protocol):
    name: str

    async def deliver(self, origin: WebSocket, text: str) -> None: ...


class UnicastDelivery:
    """Reply to the originating connection only."""

    name = "unicast"

    async def deliver(self, origin: WebSocket, text: str) -> None:
        await origin.send_text(text)


class BroadcastDelivery:
    """
    Send every record to every registered connection.

    The origin always gets the record and its failures propagate, ending
    its own session loop.  A peer whose send fails or takes longer than
    ``send_timeout`` seconds is dropped from the registry.
    """

    name = "broadcast"

    def __init__(self, registry: ConnectionRegistry, send_timeout: float = 1.0) -> None:
        self.registry = registry
        self.send_timeout = send_timeout

    async def deliver(self, origin: WebSocket, text: str) -> None:
        sends = [origin.send_text(text)]
        for ws in self.registry.snapshot():
            if ws is origin:
                continue
            if ws.application_state is WebSocketState.DISCONNECTED:
                self.registry.discard(ws)
                continue
            if ws.application_state is not WebSocketState.CONNECTED:
                continue    # registered but not yet accepted
            sends.append(self._send_peer(ws, text))
        await asyncio.gather(*sends)

    async def _send_peer(self, ws: WebSocket, text: str) -> None:
        try:
            await asyncio.wait_for(ws.send_text(text), self.send_timeout)
        except asyncio.TimeoutError:
            logger.info("Dropping broadcast peer: send timed out after %.3gs", self.send_timeout)
            self.registry.discard(ws)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.info("Dropping broadcast peer after failed send: %s", e)
            self.registry.discard(ws)


def make_delivery(policy: str, registry: ConnectionRegistry) -> Delivery:
    if policy == "unicast":
        return UnicastDelivery()
    if policy == "broadcast":
        return BroadcastDelivery(registry)
    raise ValueError(f"unknown delivery policy {policy!r} (expected 'unicast' or 'broadcast')")
