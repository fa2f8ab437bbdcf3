"""
Particle Classification
=======================

Fresh per-tick classification of the pixel driving each particle.

There is no stored per-particle state machine. Every tick each particle
is classified from its current motion and edge samples alone:

    MOVING        motion > motion_threshold AND edge > edge_threshold
    STATIC        motion < static_threshold
    TRANSITIONAL  otherwise

The conditions are checked in that order, so exactly one applies for
any (motion, edge) pair.
"""

from enum import IntEnum

import numpy as np

from particle_vision.particles.base import ClassificationThresholds


class Classification(IntEnum):
    """Per-particle classification codes."""

    STATIC = 0
    TRANSITIONAL = 1
    MOVING = 2


def classify(
    motion: float,
    edge_strength: float,
    thresholds: ClassificationThresholds = ClassificationThresholds(),
) -> Classification:
    """
    Classify a single motion/edge sample.

    Args:
        motion: Smoothed motion value
        edge_strength: Edge map value
        thresholds: Classification thresholds

    Returns:
        The single applicable Classification
    """
    if motion > thresholds.motion_threshold and edge_strength > thresholds.edge_threshold:
        return Classification.MOVING
    if motion < thresholds.static_threshold:
        return Classification.STATIC
    return Classification.TRANSITIONAL


def classify_array(
    motion: np.ndarray,
    edge_strength: np.ndarray,
    thresholds: ClassificationThresholds = ClassificationThresholds(),
) -> np.ndarray:
    """
    Vectorized classify() over matching arrays.

    Args:
        motion: Motion samples
        edge_strength: Edge samples, same shape as motion

    Returns:
        int8 array of Classification codes
    """
    codes = np.full(motion.shape, Classification.TRANSITIONAL, dtype=np.int8)
    static = motion < thresholds.static_threshold
    moving = (motion > thresholds.motion_threshold) & (
        edge_strength > thresholds.edge_threshold
    )
    codes[static] = Classification.STATIC
    codes[moving] = Classification.MOVING
    return codes


def count_classes(codes: np.ndarray) -> dict:
    """Number of particles per classification."""
    counts = np.bincount(codes.astype(np.int64), minlength=len(Classification))
    return {cls.name.lower(): int(counts[cls]) for cls in Classification}
