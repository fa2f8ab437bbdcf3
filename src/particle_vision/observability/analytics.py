"""
Analytics Module
================

Per-tick statistics derived from the simulation.

This module computes analytics for observability ONLY.
Analytics never feed back into the particle update.

Derived from:
    - MotionReactiveUpdater (classification codes of the last tick)
    - MotionEstimator (debug motion state)
    - Edge map (peak edge strength)
    - Tick timing
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from particle_vision.particles.classify import count_classes
from particle_vision.vision.motion import MotionDebugState


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TickAnalytics:
    """
    Analytics snapshot for one tick.

    Attributes:
        tick: Tick number (1-based)
        frame_ready: Whether the video source produced a frame
        moving: Motion-layer particles classified MOVING
        static: Motion-layer particles classified STATIC
        transitional: Motion-layer particles classified TRANSITIONAL
        mean_motion: Mean smoothed motion over the map
        max_motion: Peak smoothed motion
        max_edge: Peak edge strength
        pointer_affected: Particles displaced by the pointer
        tick_ms: Wall time spent in the tick
    """

    tick: int
    frame_ready: bool
    moving: int
    static: int
    transitional: int
    mean_motion: float
    max_motion: float
    max_edge: float
    pointer_affected: int
    tick_ms: float

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "tick": self.tick,
            "frame_ready": self.frame_ready,
            "moving": self.moving,
            "static": self.static,
            "transitional": self.transitional,
            "mean_motion": round(self.mean_motion, 4),
            "max_motion": round(self.max_motion, 4),
            "max_edge": round(self.max_edge, 4),
            "pointer_affected": self.pointer_affected,
            "tick_ms": round(self.tick_ms, 3),
        }


class AnalyticsComputer:
    """
    Builds TickAnalytics and keeps running totals.

    Logs a one-line summary every `log_every_n_ticks` ticks.
    """

    def __init__(self, log_every_n_ticks: int = 300) -> None:
        """
        Initialize analytics computer.

        Args:
            log_every_n_ticks: Summary logging interval
        """
        self.log_every_n_ticks = log_every_n_ticks

        self._tick_count: int = 0
        self._ready_ticks: int = 0
        self._total_tick_ms: float = 0.0
        self._last: Optional[TickAnalytics] = None

        logger.info(f"AnalyticsComputer initialized: log_every={log_every_n_ticks}")

    def compute(
        self,
        frame_ready: bool,
        classification: Optional[np.ndarray],
        motion_debug: Optional[MotionDebugState],
        edge_map: Optional[np.ndarray],
        pointer_affected: int,
        tick_ms: float,
    ) -> TickAnalytics:
        """
        Compute analytics for the tick that just finished.

        Args:
            frame_ready: Whether the sampler produced a frame this tick
            classification: Motion-layer classification codes (None while
                idle or while the motion layer is hidden)
            motion_debug: Debug state from the MotionEstimator
            edge_map: Edge map of this tick (None while idle)
            pointer_affected: Particles displaced by the pointer
            tick_ms: Wall time of the tick

        Returns:
            TickAnalytics snapshot
        """
        self._tick_count += 1
        self._total_tick_ms += tick_ms

        if frame_ready:
            self._ready_ticks += 1
        if frame_ready and classification is not None:
            counts = count_classes(classification)
        else:
            counts = {"moving": 0, "static": 0, "transitional": 0}

        snapshot = TickAnalytics(
            tick=self._tick_count,
            frame_ready=frame_ready,
            moving=counts["moving"],
            static=counts["static"],
            transitional=counts["transitional"],
            mean_motion=motion_debug.mean_motion if motion_debug and frame_ready else 0.0,
            max_motion=motion_debug.max_motion if motion_debug and frame_ready else 0.0,
            max_edge=float(edge_map.max()) if edge_map is not None and edge_map.size else 0.0,
            pointer_affected=pointer_affected,
            tick_ms=tick_ms,
        )
        self._last = snapshot

        if self._tick_count % self.log_every_n_ticks == 0:
            logger.info(
                f"Tick summary [tick {self._tick_count}]: "
                f"moving={snapshot.moving}, static={snapshot.static}, "
                f"transitional={snapshot.transitional}, "
                f"mean_motion={snapshot.mean_motion:.4f}, "
                f"avg_tick={self.mean_tick_ms:.2f}ms"
            )

        return snapshot

    @property
    def last(self) -> Optional[TickAnalytics]:
        """Analytics of the most recent tick."""
        return self._last

    @property
    def mean_tick_ms(self) -> float:
        if self._tick_count == 0:
            return 0.0
        return self._total_tick_ms / self._tick_count

    def get_metrics(self) -> dict:
        """Running totals for observability."""
        return {
            "ticks": self._tick_count,
            "ready_ticks": self._ready_ticks,
            "mean_tick_ms": round(self.mean_tick_ms, 3),
            "last": self._last.to_dict() if self._last else None,
        }
