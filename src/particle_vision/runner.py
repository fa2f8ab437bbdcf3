"""
Tick Loop
=========

Async driver that runs ParticleEngine ticks at a target rate.

Two modes:
    - inline:  each tick runs synchronously on the event loop
    - offload: each tick runs on a single worker thread; the event loop
               keeps serving requests while it computes

Design Rules:
    - At most ONE tick is ever in flight
    - A tick that is due while the previous one is still running is
      DROPPED and counted, never queued
    - The engine is only touched from the tick that owns it
    - Pointer updates arrive from request handlers through PointerState
"""

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

from particle_vision.engine import ParticleEngine, TickResult, pointer_to_world


logger = logging.getLogger(__name__)


class PointerState:
    """
    Latest pointer position, shared between handlers and ticks.

    Stores the normalized position ([-1, 1] on both axes); ticks read
    it in world units.
    """

    def __init__(self, pointer_scale: float = 5.0) -> None:
        if pointer_scale <= 0:
            raise ValueError(f"pointer_scale must be > 0, got {pointer_scale}")
        self.pointer_scale = pointer_scale
        self._lock = threading.Lock()
        self._normalized: Optional[Tuple[float, float]] = None

    def set(self, x: float, y: float) -> None:
        with self._lock:
            self._normalized = (float(x), float(y))

    def clear(self) -> None:
        with self._lock:
            self._normalized = None

    @property
    def normalized(self) -> Optional[Tuple[float, float]]:
        with self._lock:
            return self._normalized

    def world(self) -> Optional[Tuple[float, float]]:
        """Pointer in world units, or None when inactive."""
        normalized = self.normalized
        if normalized is None:
            return None
        return pointer_to_world(normalized[0], normalized[1], self.pointer_scale)


class TickLoop:
    """
    Runs engine ticks at a fixed rate.

    Attributes:
        target_fps: Tick rate
        offload: Whether ticks run on a worker thread
        tick_count: Ticks completed
        dropped_count: Ticks skipped because one was still in flight
        error_count: Ticks that raised

    Example:
        loop = TickLoop(engine, target_fps=60, offload=True)
        task = asyncio.create_task(loop.run())
        ...
        await loop.stop()
    """

    def __init__(
        self,
        engine: ParticleEngine,
        target_fps: float = 60.0,
        offload: bool = False,
        pointer: Optional[PointerState] = None,
    ) -> None:
        """
        Initialize tick loop.

        Raises:
            ValueError: If target_fps is not positive
        """
        if target_fps <= 0:
            raise ValueError(f"target_fps must be > 0, got {target_fps}")

        self.engine = engine
        self.target_fps = target_fps
        self.offload = offload
        self.pointer = pointer if pointer is not None else PointerState()

        self._executor: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="particle-tick")
            if offload else None
        )
        self._in_flight: Optional[asyncio.Future] = None
        self._running = False
        self._started_at: Optional[float] = None

        self._tick_count: int = 0
        self._dropped_count: int = 0
        self._error_count: int = 0
        self._last_result: Optional[TickResult] = None

        logger.info(f"TickLoop initialized: target_fps={target_fps}, offload={offload}")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def period(self) -> float:
        return 1.0 / self.target_fps

    @property
    def running(self) -> bool:
        return self._running

    @property
    def busy(self) -> bool:
        """Whether a tick is currently in flight."""
        return self._in_flight is not None and not self._in_flight.done()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def dropped_count(self) -> int:
        return self._dropped_count

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def last_result(self) -> Optional[TickResult]:
        return self._last_result

    def elapsed(self) -> float:
        """Seconds since the loop started (0 before the first tick)."""
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    # -------------------------------------------------------------------------
    # Ticking
    # -------------------------------------------------------------------------

    def _tick(self) -> TickResult:
        return self.engine.tick(pointer=self.pointer.world(), elapsed=self.elapsed())

    def _record(self, result: TickResult) -> None:
        self._tick_count += 1
        self._last_result = result

    def _on_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._error_count += 1
            logger.error(f"Tick failed: {error}")
            return
        self._record(future.result())

    async def step(self) -> bool:
        """
        Attempt one tick.

        Inline mode runs the tick to completion. Offload mode submits it
        to the worker and returns immediately.

        Returns:
            True if a tick was started, False if it was dropped
        """
        if self._started_at is None:
            self._started_at = time.monotonic()

        if self.busy:
            self._dropped_count += 1
            logger.warning(f"Tick dropped (previous still running). Total dropped: {self._dropped_count}")
            return False

        if self._executor is None:
            try:
                self._record(self._tick())
            except Exception as e:
                self._error_count += 1
                logger.error(f"Tick failed: {e}")
            return True

        loop = asyncio.get_running_loop()
        self._in_flight = loop.run_in_executor(self._executor, self._tick)
        self._in_flight.add_done_callback(self._on_done)
        return True

    async def wait_idle(self) -> None:
        """Wait for the in-flight tick, if any, to finish."""
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.wait([self._in_flight])

    async def run(self) -> None:
        """Tick at target_fps until stop() is called."""
        self._running = True
        logger.info("Tick loop started")

        next_due = time.monotonic()
        try:
            while self._running:
                await self.step()

                next_due += self.period
                delay = next_due - time.monotonic()
                if delay < 0:
                    # Fell behind; realign instead of bursting
                    next_due = time.monotonic()
                    delay = 0.0
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.info("Tick loop cancelled")
            raise
        finally:
            self._running = False
            logger.info(
                f"Tick loop stopped: ticks={self._tick_count}, "
                f"dropped={self._dropped_count}, errors={self._error_count}"
            )

    async def stop(self) -> None:
        """Stop ticking and release the worker thread."""
        self._running = False
        await self.wait_idle()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def get_metrics(self) -> dict:
        """Loop metrics for observability."""
        return {
            "running": self._running,
            "target_fps": self.target_fps,
            "offload": self.offload,
            "ticks": self._tick_count,
            "dropped": self._dropped_count,
            "errors": self._error_count,
        }
