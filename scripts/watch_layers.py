#!/usr/bin/env python3
"""
Layer Stream Watcher
====================

Connects to a running service's /ws/layers endpoint and reports what
arrives.

This script:
    1. Connects to the layer stream (reconnecting with backoff)
    2. Decodes each layer's base64 float32 buffers
    3. Logs message rate, per-layer counts and Z ranges

Usage:
    python scripts/watch_layers.py --duration 30
    python scripts/watch_layers.py --url ws://localhost:8002/ws/layers
"""

import argparse
import asyncio
import json
import logging
import os
import time

import websockets
from websockets.exceptions import ConnectionClosed

from particle_vision.render.store import decode_buffer


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def summarize(payload: dict) -> str:
    """One-line description of a layer payload."""
    parts = []
    for layer in payload.get("layers", []):
        positions = decode_buffer(layer["positions"]).reshape(-1, 3)
        if positions.size:
            z_range = f"z[{positions[:, 2].min():.2f}, {positions[:, 2].max():.2f}]"
        else:
            z_range = "empty"
        flag = "" if layer["visible"] else " (hidden)"
        parts.append(f"{layer['kind']}={layer['count']} {layer['blending']} {z_range}{flag}")
    return f"seq={payload.get('sequence')} " + " | ".join(parts)


async def watch(url: str, duration: float, backoff_ms: int) -> int:
    """
    Watch the stream for `duration` seconds.

    Returns:
        Number of messages received
    """
    received = 0
    reconnects = 0
    started = time.time()
    backoff = backoff_ms / 1000.0

    while time.time() - started < duration:
        try:
            async with websockets.connect(url, max_size=None) as ws:
                logger.info(f"Connected to {url}")
                backoff = backoff_ms / 1000.0
                while time.time() - started < duration:
                    remaining = duration - (time.time() - started)
                    try:
                        raw = await asyncio.wait_for(ws.recv(), timeout=max(0.1, remaining))
                    except asyncio.TimeoutError:
                        break
                    received += 1
                    logger.info(summarize(json.loads(raw)))
        except (ConnectionClosed, OSError) as e:
            reconnects += 1
            logger.warning(f"Connection lost ({e}); retrying in {backoff:.1f}s")
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, 10.0)

    elapsed = time.time() - started
    logger.info("=" * 60)
    logger.info(f"Messages: {received} in {elapsed:.1f}s ({received / elapsed:.1f}/s)")
    logger.info(f"Reconnects: {reconnects}")
    logger.info("=" * 60)
    return received


def main():
    parser = argparse.ArgumentParser(description="Watch the /ws/layers stream")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("PARTICLE_VISION_LAYERS_URL", "ws://localhost:8002/ws/layers"),
        help="WebSocket URL of the layer stream",
    )
    parser.add_argument("--duration", type=float, default=30.0, help="Seconds to watch")
    parser.add_argument("--backoff-ms", type=int, default=500, help="Initial reconnect backoff")
    args = parser.parse_args()

    asyncio.run(watch(args.url, args.duration, args.backoff_ms))


if __name__ == "__main__":
    main()
