#!/usr/bin/env python3
"""
ECG Stream – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --host ADDR          Listen address (default: 0.0.0.0)
    --port INT           Listen port (default: $PORT or 8080)
    --fs FLOAT           Sampling rate of incoming samples in Hz (default: 250)
    --delivery MODE      unicast | broadcast (default: unicast)
    --timing MODE        sample | arrival (default: sample)
    --log-level LEVEL    Logging level (default: INFO)
    --demo SECONDS       No server; run a synthetic stream and log metrics

Clients connect to ``ws://HOST:PORT/`` and send ``{"ecg": <adc>}``
messages; each sample is answered with ``{"ecg", "hr", "hrv", "qrs"}``.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

from ecg_stream.config import PipelineConfig
from ecg_stream.server import create_app
from ecg_stream.session import SessionProcessor
from ecg_stream.synthetic import synthetic_ecg

logger = logging.getLogger("ecg_stream")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Real-time ECG metrics engine (WebSocket)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0",
                        help="Listen address")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 8080)),
                        help="Listen port (env PORT)")
    parser.add_argument("--fs", type=float, default=250.0,
                        help="Sampling rate of the incoming stream in Hz")
    parser.add_argument("--delivery", choices=("unicast", "broadcast"), default="unicast",
                        help="Reply to the sender only, or fan out to all clients")
    parser.add_argument("--timing", choices=("sample", "arrival"), default="sample",
                        help="Sample-index clock or wall-clock arrival times")
    parser.add_argument("--log-level", default="INFO",
                        help="Logging level")
    parser.add_argument("--demo", type=float, default=None, metavar="SECONDS",
                        help="Run a synthetic 72 BPM stream headless instead of serving")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

def run_demo(config: PipelineConfig, seconds: float) -> int:
    signal = synthetic_ecg(seconds, bpm=72.0, fs=config.fs, noise_std=4.0, wander_amplitude=40.0)
    session = SessionProcessor(config)
    log_every = int(config.fs)

    for i, raw in enumerate(signal):
        result = session.process(raw)
        if (i + 1) % log_every == 0:
            t = (i + 1) / config.fs
            if result.hr is not None:
                logger.info("[%5.1fs] HR=%d  HRV=%s ms  QRS=%s ms", t, result.hr, result.hrv, result.qrs)
            else:
                logger.info("[%5.1fs] Waiting for signal…", t)

    logger.info(
        "Demo finished: %d beats, %d RR accepted, %d rejected",
        session.detector.beats, session.validator.accepted, session.validator.rejected,
    )
    return 0


def run(args: argparse.Namespace) -> int:
    try:
        config = PipelineConfig(fs=args.fs)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if args.demo is not None:
        return run_demo(config, args.demo)

    app = create_app(config, delivery=args.delivery, timing=args.timing)
    logger.info(
        "ECG stream engine on ws://%s:%d/ (fs=%g Hz, delivery=%s, timing=%s)",
        args.host, args.port, config.fs, args.delivery, args.timing,
    )
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
