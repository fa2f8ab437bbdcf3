"""
Motion Estimation
=================

Per-pixel, temporally smoothed motion intensity from consecutive frames.

This estimator:
    - Retains the previous sampled frame's raw pixel buffer
    - Computes a luma-weighted absolute color difference per pixel
    - Smooths it exponentially against the previous motion map

Formulas:
    raw      = (0.299 |ΔR| + 0.587 |ΔG| + 0.114 |ΔB|) / 255
    smoothed = 0.7 * raw + 0.3 * previous_smoothed

Key Design Decisions:
    - The first frame after construction, reset() or a dimension change
      has nothing to diff against and reports zero motion everywhere
    - The previous frame is a full copy; nothing is shared with the caller
    - Values are never clamped; layer thresholds are tuned to this scale
    - Motion/static thresholds are NOT part of this component; they are
      passed to the layer update
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from particle_vision.models.frame import SampledFrame


logger = logging.getLogger(__name__)


CHANNEL_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@dataclass(frozen=True, slots=True)
class MotionDebugState:
    """
    Debug motion state for the last estimate (internal only).

    Attributes:
        mean_motion: Mean smoothed motion over the map
        max_motion: Peak smoothed motion
        max_raw_motion: Peak unsmoothed motion
        is_first_frame: True when no previous frame was available
    """

    mean_motion: float
    max_motion: float
    max_raw_motion: float
    is_first_frame: bool

    def __repr__(self) -> str:
        return (
            f"MotionDebugState(mean={self.mean_motion:.4f}, "
            f"max={self.max_motion:.4f}, raw_max={self.max_raw_motion:.4f}, "
            f"first={self.is_first_frame})"
        )


def raw_motion(current: np.ndarray, previous: np.ndarray) -> np.ndarray:
    """
    Luma-weighted absolute color difference between two RGBA buffers.

    Args:
        current: (H, W, 4) uint8 pixels
        previous: (H, W, 4) uint8 pixels of the same shape

    Returns:
        (H, W) float64 array in [0, 1]
    """
    diff = np.abs(
        current[..., :3].astype(np.int16) - previous[..., :3].astype(np.int16)
    ).astype(np.float64)
    return (diff @ CHANNEL_WEIGHTS) / 255.0


class MotionEstimator:
    """
    Stateful frame-differencing motion estimator bound to one video source.

    Attributes:
        smoothing: Weight of the raw motion in the exponential smoothing
            (the previous map gets 1 - smoothing)
    """

    def __init__(self, smoothing: float = 0.7) -> None:
        """
        Initialize motion estimator.

        Args:
            smoothing: Raw-motion weight in (0, 1]

        Raises:
            ValueError: If smoothing is out of range
        """
        if not 0 < smoothing <= 1:
            raise ValueError(f"smoothing must be in (0, 1], got {smoothing}")

        self.smoothing = smoothing

        self._previous_pixels: Optional[np.ndarray] = None
        self._motion_map: Optional[np.ndarray] = None
        self._generation: Optional[int] = None
        self._frame_count: int = 0
        self._last_debug_state: Optional[MotionDebugState] = None

        logger.info(f"MotionEstimator initialized: smoothing={smoothing}")

    def estimate(self, frame: SampledFrame) -> np.ndarray:
        """
        Update and return the motion map for a new frame.

        Args:
            frame: Current sampled frame

        Returns:
            MotionMap: (H, W) float64 array matching the frame dimensions
        """
        self._frame_count += 1
        pixels = frame.pixels

        dimension_changed = (
            self._motion_map is None
            or self._motion_map.shape != frame.shape
            or self._generation != frame.generation
        )

        if dimension_changed or self._previous_pixels is None:
            if self._motion_map is not None and dimension_changed:
                logger.info(
                    f"Motion buffers reallocated: "
                    f"{self._motion_map.shape[1]}x{self._motion_map.shape[0]} -> "
                    f"{frame.width}x{frame.height}"
                )
            self._motion_map = np.zeros(frame.shape, dtype=np.float64)
            self._generation = frame.generation
            self._previous_pixels = pixels.copy()
            self._last_debug_state = MotionDebugState(
                mean_motion=0.0,
                max_motion=0.0,
                max_raw_motion=0.0,
                is_first_frame=True,
            )
            logger.debug(f"First frame ({frame!r}), storing for next")
            return self._motion_map.copy()

        raw = raw_motion(pixels, self._previous_pixels)
        self._motion_map = (
            self.smoothing * raw + (1.0 - self.smoothing) * self._motion_map
        )
        self._previous_pixels = pixels.copy()

        self._last_debug_state = MotionDebugState(
            mean_motion=float(self._motion_map.mean()),
            max_motion=float(self._motion_map.max()),
            max_raw_motion=float(raw.max()),
            is_first_frame=False,
        )

        return self._motion_map.copy()

    @property
    def motion_map(self) -> Optional[np.ndarray]:
        """Current smoothed map (None before the first frame)."""
        return self._motion_map

    @property
    def debug_state(self) -> Optional[MotionDebugState]:
        """Debug state of the last estimate."""
        return self._last_debug_state

    @property
    def frame_count(self) -> int:
        """Number of frames processed."""
        return self._frame_count

    def reset(self) -> None:
        """Discard the previous frame and motion map (source stopped)."""
        self._previous_pixels = None
        self._motion_map = None
        self._generation = None
        self._frame_count = 0
        self._last_debug_state = None
        logger.info("MotionEstimator reset")
