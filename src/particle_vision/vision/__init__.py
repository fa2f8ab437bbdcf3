"""
Vision Module
=============

Per-pixel analysis of sampled frames.

This module provides:
    - Edge detection (luma -> 5x5 Gaussian blur -> Sobel magnitude)
    - Motion estimation (frame differencing with exponential smoothing)

Both stages consume the same SampledFrame each tick and produce maps
with exactly the frame's dimensions.
"""

from particle_vision.vision.edges import EdgeDetector, to_luma
from particle_vision.vision.motion import (
    MotionDebugState,
    MotionEstimator,
    raw_motion,
)

__all__ = [
    # Edges
    "EdgeDetector",
    "to_luma",
    # Motion
    "MotionEstimator",
    "MotionDebugState",
    "raw_motion",
]
