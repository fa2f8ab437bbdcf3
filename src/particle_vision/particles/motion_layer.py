"""
Motion-Reactive Layer
=====================

The video-driven particle layer.

Each particle maps to exactly one pixel of the current motion/edge maps
through a regular grid correspondence and is classified fresh every
tick (see particles.classify). The classification selects both the
position pull and the color rule:

    MOVING        pull 0.4 (xy) toward base + random offset,
                  pull 0.3 (z) toward 1 - intensity * boost * 0.5,
                  color = min(1, layer_color * pixel * (1 + edge * 0.8))
    STATIC        pull 0.15 toward base (z toward 4),
                  color = 0 when hiding still particles,
                  else max(0.1, non_moving_color * pixel * 0.6)
    TRANSITIONAL  pull 0.08 toward base (z toward 2 + brightness * 0.2),
                  color = linear blend of the moving and non-moving rules
                  weighted by motion / motion_threshold

    intensity = min(motion * 2, 1), boost = 1 + edge * 3

With no active or ready video source the layer idles: every particle
decays toward its base at 0.1 (z toward 2) and turns mid-gray.

Determinism:
    Random offsets come from a seeded numpy Generator owned by the
    updater. Identical frame sequences from the same initial state give
    identical arrays.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from particle_vision.models.layer import LayerKind
from particle_vision.particles.base import (
    ParticleLayer,
    TickContext,
    grid_coordinates,
)
from particle_vision.particles.classify import Classification, classify_array


logger = logging.getLogger(__name__)


# Layer geometry
MOTION_LAYER_WIDTH = 10.0
MOTION_LAYER_HEIGHT = 8.0
MOTION_LAYER_Z = 3.0
DEFAULT_ASPECT_RATIO = 16.0 / 9.0

# MOVING
MOVING_PULL_XY = 0.4
MOVING_PULL_Z = 0.3
MOVING_Z_ANCHOR = 1.0
OFFSET_SPREAD = 4.0
CONTOUR_POSITION_BOOST = 3.0
CONTOUR_COLOR_BOOST = 0.8

# STATIC
STATIC_PULL = 0.15
STATIC_Z = 4.0
STATIC_BRIGHTNESS = 0.6
STATIC_COLOR_FLOOR = 0.1

# TRANSITIONAL
TRANSITIONAL_PULL = 0.08
TRANSITIONAL_Z = 2.0
TRANSITIONAL_Z_BRIGHTNESS = 0.2

# Idle (no video)
IDLE_PULL = 0.1
IDLE_Z = 2.0
IDLE_COLOR = 0.5


def sample_indices(count: int, map_shape: Tuple[int, int]) -> np.ndarray:
    """
    Flat map index sampled by each particle.

    pixel = (floor(col * map_width / grid_size), floor(row * map_height / grid_size))

    Indices are clamped to the map, so rounding on a non-square grid
    never reads past the last row or column.

    Args:
        count: Particle count
        map_shape: (height, width) of the motion/edge maps

    Returns:
        int64 array of flat indices into a (height, width) map
    """
    height, width = map_shape
    rows, cols, grid_size = grid_coordinates(count)
    x = np.floor(cols * (width / grid_size)).astype(np.int64)
    y = np.floor(rows * (height / grid_size)).astype(np.int64)
    np.clip(x, 0, width - 1, out=x)
    np.clip(y, 0, height - 1, out=y)
    return y * width + x


class MotionReactiveUpdater:
    """
    Video-driven update strategy for the motion layer.

    Attributes:
        last_classification: int8 Classification codes from the last
            video tick (None while idle)
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        """
        Initialize the updater.

        Args:
            seed: Seed for the random offset generator
        """
        self._rng = np.random.default_rng(seed)
        self._index_key: Optional[Tuple[int, Tuple[int, int]]] = None
        self._indices: Optional[np.ndarray] = None
        self.last_classification: Optional[np.ndarray] = None

    def indices_for(self, count: int, map_shape: Tuple[int, int]) -> np.ndarray:
        """sample_indices() for a count and map shape, cached for the current shape only."""
        key = (count, tuple(map_shape))
        if key != self._index_key:
            self._indices = sample_indices(count, map_shape)
            self._index_key = key
            logger.debug(f"Sampling grid built: count={count}, map={map_shape}")
        return self._indices

    def update(self, layer: ParticleLayer, context: TickContext) -> None:
        if not context.has_video:
            self._idle(layer)
            self.last_classification = None
            return
        self._react(layer, context)

    def _idle(self, layer: ParticleLayer) -> None:
        """Decay toward base and fade to neutral gray."""
        positions = layer.positions3
        base = layer.base_positions3

        positions[:, :2] += (base[:, :2] - positions[:, :2]) * IDLE_PULL
        positions[:, 2] += (IDLE_Z - positions[:, 2]) * IDLE_PULL
        layer.colors3[:] = IDLE_COLOR

    def _react(self, layer: ParticleLayer, context: TickContext) -> None:
        """Classification-driven update against the current maps."""
        motion_map = context.motion_map
        edge_map = context.edge_map
        frame = context.frame
        thresholds = context.thresholds
        controls = context.controls

        indices = self.indices_for(layer.count, motion_map.shape)
        motion = motion_map.reshape(-1)[indices]
        edge = edge_map.reshape(-1)[indices]
        pixel = frame.pixels.reshape(-1, 4)[indices, :3].astype(np.float64) / 255.0
        brightness = pixel.mean(axis=1)

        codes = classify_array(motion, edge, thresholds)
        self.last_classification = codes

        positions = layer.positions3
        base = layer.base_positions3
        colors = layer.colors3
        moving_rgb = np.asarray(controls.motion.rgb, dtype=np.float64)
        still_rgb = np.asarray(controls.non_moving_rgb, dtype=np.float64)

        # MOVING
        moving = codes == Classification.MOVING
        n_moving = int(np.count_nonzero(moving))
        if n_moving:
            intensity = np.minimum(motion[moving] * 2.0, 1.0)
            boost = 1.0 + edge[moving] * CONTOUR_POSITION_BOOST
            spread = intensity * boost * OFFSET_SPREAD
            offsets = (self._rng.random((n_moving, 2)) - 0.5) * spread[:, None]

            current = positions[moving].astype(np.float64)
            current[:, :2] += (base[moving, :2] + offsets - current[:, :2]) * MOVING_PULL_XY
            z_target = MOVING_Z_ANCHOR - intensity * boost * 0.5
            current[:, 2] += (z_target - current[:, 2]) * MOVING_PULL_Z
            positions[moving] = current

            color_boost = 1.0 + edge[moving] * CONTOUR_COLOR_BOOST
            colors[moving] = np.minimum(
                1.0, moving_rgb * pixel[moving] * color_boost[:, None]
            )

        # STATIC
        static = codes == Classification.STATIC
        if np.any(static):
            current = positions[static].astype(np.float64)
            current[:, :2] += (base[static, :2] - current[:, :2]) * STATIC_PULL
            current[:, 2] += (STATIC_Z - current[:, 2]) * STATIC_PULL
            positions[static] = current

            if controls.hide_static:
                colors[static] = 0.0
            else:
                colors[static] = np.maximum(
                    STATIC_COLOR_FLOOR, still_rgb * pixel[static] * STATIC_BRIGHTNESS
                )

        # TRANSITIONAL
        transitional = codes == Classification.TRANSITIONAL
        if np.any(transitional):
            current = positions[transitional].astype(np.float64)
            current[:, :2] += (base[transitional, :2] - current[:, :2]) * TRANSITIONAL_PULL
            z_target = TRANSITIONAL_Z + brightness[transitional] * TRANSITIONAL_Z_BRIGHTNESS
            current[:, 2] += (z_target - current[:, 2]) * TRANSITIONAL_PULL
            positions[transitional] = current

            weight = (motion[transitional] / thresholds.motion_threshold)[:, None]
            px = pixel[transitional]
            colors[transitional] = (
                weight * moving_rgb * px + (1.0 - weight) * still_rgb * px
            )


def create_motion_layer(
    count: int = 45000,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
    seed: Optional[int] = None,
    size: float = 0.025,
    opacity: float = 0.9,
) -> ParticleLayer:
    """
    Build the motion-reactive layer on an aspect-corrected grid.

    Base positions span 10 * aspect_ratio by 8 world units centered on
    the origin at z = 3, with rows running top to bottom.

    Args:
        count: Particle count
        aspect_ratio: Grid aspect ratio (width / height)
        seed: Seed for random offsets
        size: Point size
        opacity: Render opacity

    Raises:
        ValueError: If count or aspect_ratio is not positive
    """
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    if aspect_ratio <= 0:
        raise ValueError(f"aspect_ratio must be > 0, got {aspect_ratio}")

    rows, cols, grid_size = grid_coordinates(count)
    base = np.empty((count, 3), dtype=np.float32)
    base[:, 0] = (cols / grid_size - 0.5) * MOTION_LAYER_WIDTH * aspect_ratio
    base[:, 1] = -(rows / grid_size - 0.5) * MOTION_LAYER_HEIGHT
    base[:, 2] = MOTION_LAYER_Z

    return ParticleLayer(
        kind=LayerKind.MOTION,
        base_positions=base,
        updater=MotionReactiveUpdater(seed=seed),
        initial_color=(1.0, 1.0, 1.0),
        size=size,
        opacity=opacity,
    )
