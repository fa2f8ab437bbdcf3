#!/usr/bin/env python3
"""
Tick Benchmark Script
=====================

Headless benchmark of ParticleEngine tick latency.

This script:
    1. Builds an engine from config (seeded)
    2. Feeds it a synthetic video: a bright square sweeping across a
       dark background
    3. Runs a fixed number of ticks, with an optional sweeping pointer
    4. Reports latency percentiles and classification counts

Usage:
    python scripts/benchmark_tick.py --ticks 600
    python scripts/benchmark_tick.py --ticks 300 --width 1920 --height 1080 --pointer
"""

import argparse
import logging
import math
import time

import numpy as np

from particle_vision.config import settings
from particle_vision.engine import ParticleEngine
from particle_vision.video import ArrayVideoSource


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def synthetic_frame(width: int, height: int, step: int, square: int) -> np.ndarray:
    """RGB frame with a white square moving left to right."""
    frame = np.full((height, width, 3), 20, dtype=np.uint8)
    span = max(1, width - square)
    x = (step * 8) % span
    y = (height - square) // 2
    frame[y:y + square, x:x + square] = 235
    return frame


def run_benchmark(ticks: int, width: int, height: int, use_pointer: bool, seed: int) -> dict:
    """
    Run the benchmark.

    Returns:
        Summary dict
    """
    logger.info("=" * 60)
    logger.info("Particle Vision Tick Benchmark")
    logger.info("=" * 60)
    logger.info(f"Ticks: {ticks}")
    logger.info(f"Source: {width}x{height} synthetic")
    logger.info(f"Pointer: {'on' if use_pointer else 'off'}")
    logger.info("=" * 60)

    engine = ParticleEngine.from_settings(settings.model_copy(update={"seed": seed}))
    source = ArrayVideoSource()
    engine.set_source(source)

    square = max(8, height // 5)
    durations = []
    moving_total = 0

    for step in range(ticks):
        source.push(synthetic_frame(width, height, step, square))

        pointer = None
        if use_pointer:
            angle = step * 0.05
            pointer = (math.cos(angle) * 3.0, math.sin(angle) * 2.0)

        started = time.perf_counter()
        result = engine.tick(pointer=pointer, elapsed=step / 60.0)
        durations.append((time.perf_counter() - started) * 1000.0)
        moving_total += result.analytics.moving

    samples = np.asarray(durations)
    summary = {
        "ticks": ticks,
        "mean_ms": float(samples.mean()),
        "p50_ms": float(np.percentile(samples, 50)),
        "p95_ms": float(np.percentile(samples, 95)),
        "max_ms": float(samples.max()),
        "mean_moving": moving_total / ticks,
    }

    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Mean tick: {summary['mean_ms']:.2f} ms")
    logger.info(f"p50 tick: {summary['p50_ms']:.2f} ms")
    logger.info(f"p95 tick: {summary['p95_ms']:.2f} ms")
    logger.info(f"Max tick: {summary['max_ms']:.2f} ms")
    logger.info(f"Mean moving particles: {summary['mean_moving']:.0f}")
    budget_ms = 1000.0 / settings.loop.target_fps
    logger.info(
        f"Budget at {settings.loop.target_fps:.0f} fps: {budget_ms:.2f} ms "
        f"({'within' if summary['p95_ms'] <= budget_ms else 'over'} at p95)"
    )
    logger.info("=" * 60)

    return summary


def main():
    parser = argparse.ArgumentParser(description="Particle Vision tick benchmark")
    parser.add_argument("--ticks", type=int, default=600, help="Ticks to run (default: 600)")
    parser.add_argument("--width", type=int, default=1280, help="Source width (default: 1280)")
    parser.add_argument("--height", type=int, default=720, help="Source height (default: 720)")
    parser.add_argument("--pointer", action="store_true", help="Sweep a pointer over the field")
    parser.add_argument("--seed", type=int, default=7, help="Particle seed (default: 7)")
    args = parser.parse_args()

    run_benchmark(
        ticks=args.ticks,
        width=args.width,
        height=args.height,
        use_pointer=args.pointer,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
