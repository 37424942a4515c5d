"""
WebSocket front end.

Each connection gets its own :class:`SessionProcessor`, created when the
socket is accepted and discarded when it closes.  Messages from one
socket are handled strictly in order: the next ``receive`` is not
awaited until the previous message's records have been sent.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from ecg_stream.clock import make_clock
from ecg_stream.config import PipelineConfig
from ecg_stream.delivery import ConnectionRegistry, make_delivery
from ecg_stream.messages import decode_samples, encode_result
from ecg_stream.session import SessionProcessor

logger = logging.getLogger(__name__)


def create_app(
    config: PipelineConfig | None = None,
    delivery: str = "unicast",
    timing: str = "sample",
) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    config:
        Pipeline constants shared (read-only) by all sessions.
    delivery:
        ``"unicast"`` to answer the sender, ``"broadcast"`` to fan each
        record out to every connected client.
    timing:
        ``"sample"`` (sample-index clock) or ``"arrival"`` (wall clock).
    """
    config = config or PipelineConfig()
    make_clock(timing, config.fs)   # fail fast on a bad timing name
    registry = ConnectionRegistry()
    sender = make_delivery(delivery, registry)

    app = FastAPI(title="ECG Stream", version="0.1.0")
    app.state.config = config
    app.state.registry = registry
    app.state.delivery = sender

    @app.get("/health")
    def health():
        return {"status": "ok", "sessions": len(registry), "delivery": sender.name}

    @app.websocket("/")
    async def ecg_stream(websocket: WebSocket):
        session = SessionProcessor(config, make_clock(timing, config.fs))
        registry.add(websocket)
        try:
            await websocket.accept()
            logger.info("Client connected (%d active)", len(registry))
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                payload = message.get("text")
                if payload is None:
                    payload = message.get("bytes")
                samples = decode_samples(payload) if payload is not None else None
                if samples is None:
                    continue
                for result in session.process_block(samples):
                    await sender.deliver(websocket, encode_result(result))
        except WebSocketDisconnect as e:
            logger.debug("Socket closed with code %s", e.code)
        finally:
            registry.discard(websocket)
            logger.info(
                "Client disconnected after %d samples (%d active)",
                session.samples_seen, len(registry),
            )

    return app
