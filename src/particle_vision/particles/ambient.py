"""
Ambient Layers
==============

Time-driven particle layers with no video dependency.

Both layers share the per-tick update contract of the motion layer but
derive everything from elapsed time and particle index:

    background  y = grid_y + sin(t * 0.5 + i * 0.01) * 0.2
                pulse = sin(t + i * 0.02) * 0.2 + 0.3
                rgb = (pulse, 0.8 * pulse, 1.2 * pulse)

    static      x, y = base + drift * (cos(a), sin(a)), a = t * 0.2 + i * 0.01
                pulse = sin(t * 0.8 + i * 0.03) * 0.1 + 0.8
                rgb = (0.9 * pulse, 0.9 * pulse, pulse)

Layer color is applied by the render sink as a tint, so these colors
are intensity patterns rather than final colors.
"""

import logging
from typing import Optional

import numpy as np

from particle_vision.models.layer import LayerKind
from particle_vision.particles.base import (
    ParticleLayer,
    TickContext,
    grid_coordinates,
)


logger = logging.getLogger(__name__)


BACKGROUND_WIDTH = 15.0
BACKGROUND_HEIGHT = 12.0
BACKGROUND_Z = -8.0
BACKGROUND_JITTER = 0.5

STATIC_WIDTH = 12.0
STATIC_HEIGHT = 10.0
STATIC_Z = -2.0
STATIC_JITTER = 0.3


class BackgroundDriftUpdater:
    """Gentle vertical wave and brightness pulse for the background plane."""

    def __init__(self, count: int) -> None:
        rows, _, grid_size = grid_coordinates(count)
        self._index = np.arange(count, dtype=np.float64)
        # Wave rides on the unjittered grid row
        self._grid_y = (rows / grid_size - 0.5) * BACKGROUND_HEIGHT

    def update(self, layer: ParticleLayer, context: TickContext) -> None:
        t = context.elapsed
        index = self._index

        layer.positions3[:, 1] = self._grid_y + np.sin(t * 0.5 + index * 0.01) * 0.2

        pulse = np.sin(t + index * 0.02) * 0.2 + 0.3
        colors = layer.colors3
        colors[:, 0] = pulse
        colors[:, 1] = pulse * 0.8
        colors[:, 2] = pulse * 1.2


class StaticPulseUpdater:
    """Slow brightness pulse and small circular drift for the middle plane."""

    def __init__(self, count: int, drift: float = 0.05) -> None:
        if drift < 0:
            raise ValueError(f"drift must be >= 0, got {drift}")
        self.drift = drift
        self._index = np.arange(count, dtype=np.float64)

    def update(self, layer: ParticleLayer, context: TickContext) -> None:
        t = context.elapsed
        index = self._index

        angle = t * 0.2 + index * 0.01
        base = layer.base_positions3
        positions = layer.positions3
        positions[:, 0] = base[:, 0] + np.cos(angle) * self.drift
        positions[:, 1] = base[:, 1] + np.sin(angle) * self.drift

        pulse = np.sin(t * 0.8 + index * 0.03) * 0.1 + 0.8
        colors = layer.colors3
        colors[:, 0] = pulse * 0.9
        colors[:, 1] = pulse * 0.9
        colors[:, 2] = pulse


def _jittered_grid(
    count: int,
    width: float,
    height: float,
    z: float,
    jitter: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Grid spread across the XY plane with uniform jitter on every axis."""
    rows, cols, grid_size = grid_coordinates(count)
    noise = (rng.random((count, 3)) - 0.5) * jitter

    base = np.empty((count, 3), dtype=np.float32)
    base[:, 0] = (cols / grid_size - 0.5) * width + noise[:, 0]
    base[:, 1] = (rows / grid_size - 0.5) * height + noise[:, 1]
    base[:, 2] = z + noise[:, 2]
    return base


def create_background_layer(
    count: int = 20000,
    seed: Optional[int] = None,
    size: float = 0.015,
    opacity: float = 0.4,
) -> ParticleLayer:
    """
    Build the background layer (farthest plane, z = -8).

    Raises:
        ValueError: If count is not positive
    """
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")

    rng = np.random.default_rng(seed)
    base = _jittered_grid(
        count, BACKGROUND_WIDTH, BACKGROUND_HEIGHT, BACKGROUND_Z, BACKGROUND_JITTER, rng
    )
    return ParticleLayer(
        kind=LayerKind.BACKGROUND,
        base_positions=base,
        updater=BackgroundDriftUpdater(count),
        initial_color=(0.3, 0.3, 0.5),
        size=size,
        opacity=opacity,
    )


def create_static_layer(
    count: int = 15000,
    seed: Optional[int] = None,
    drift: float = 0.05,
    size: float = 0.02,
    opacity: float = 0.6,
) -> ParticleLayer:
    """
    Build the static layer (middle plane, z = -2).

    Raises:
        ValueError: If count is not positive
    """
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")

    rng = np.random.default_rng(seed)
    base = _jittered_grid(
        count, STATIC_WIDTH, STATIC_HEIGHT, STATIC_Z, STATIC_JITTER, rng
    )
    return ParticleLayer(
        kind=LayerKind.STATIC,
        base_positions=base,
        updater=StaticPulseUpdater(count, drift=drift),
        initial_color=(0.8, 0.8, 0.9),
        size=size,
        opacity=opacity,
    )
