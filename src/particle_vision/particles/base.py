"""
Particle Layer Base
===================

State container and update contract shared by every particle layer.

A ParticleLayer owns three parallel flat float32 arrays (positions,
base_positions, colors), each holding 3 floats per particle. Arrays are
allocated once and mutated in place for the life of the layer; the
particle count never changes.

How a layer moves is NOT decided by the layer itself. Each layer carries
a LayerUpdater strategy object:
    - MotionReactiveUpdater: driven by the video motion/edge maps
    - StaticPulseUpdater: time-driven pulsing
    - BackgroundDriftUpdater: time-driven drift

Grid Correspondence:
    grid_size = sqrt(count)     (real-valued)
    row = floor(i / grid_size)
    col = i mod grid_size
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import numpy as np

from particle_vision.models.controls import SceneControls
from particle_vision.models.frame import SampledFrame
from particle_vision.models.layer import LayerKind, LayerSnapshot, resolve_blending


logger = logging.getLogger(__name__)


def grid_coordinates(count: int) -> Tuple[np.ndarray, np.ndarray, float]:
    """
    Regular grid coordinates for a particle count.

    Args:
        count: Number of particles

    Returns:
        Tuple of (rows, cols, grid_size); rows and cols are float64 arrays
        of length count
    """
    grid_size = float(np.sqrt(count))
    index = np.arange(count, dtype=np.float64)
    rows = np.floor(index / grid_size)
    cols = np.mod(index, grid_size)
    return rows, cols, grid_size


@dataclass(frozen=True, slots=True)
class ClassificationThresholds:
    """
    Thresholds for per-particle classification.

    Attributes:
        motion_threshold: Motion strictly above this (with an edge) is MOVING
        static_threshold: Motion strictly below this is STATIC
        edge_threshold: Edge strength strictly above this qualifies MOVING
    """

    motion_threshold: float = 0.08
    static_threshold: float = 0.03
    edge_threshold: float = 0.1

    def __post_init__(self) -> None:
        errors = []
        if self.motion_threshold <= 0:
            errors.append(f"motion_threshold must be > 0, got {self.motion_threshold}")
        if self.static_threshold < 0:
            errors.append(f"static_threshold must be >= 0, got {self.static_threshold}")
        if self.static_threshold > self.motion_threshold:
            errors.append(
                f"static_threshold ({self.static_threshold}) must not exceed "
                f"motion_threshold ({self.motion_threshold})"
            )
        if self.edge_threshold < 0:
            errors.append(f"edge_threshold must be >= 0, got {self.edge_threshold}")
        if errors:
            raise ValueError(
                "Threshold validation failed:\n" + "\n".join(errors)
            )


@dataclass(slots=True)
class TickContext:
    """
    Everything a layer update may read on one tick.

    frame, motion_map and edge_map are all None when the video source
    is missing or not ready.

    Attributes:
        elapsed: Seconds since the engine started
        controls: Configuration surface for this tick
        thresholds: Classification thresholds
        frame: Sampled frame for this tick
        motion_map: Smoothed motion map matching the frame
        edge_map: Edge map matching the frame
    """

    elapsed: float
    controls: SceneControls
    thresholds: ClassificationThresholds
    frame: Optional[SampledFrame] = None
    motion_map: Optional[np.ndarray] = None
    edge_map: Optional[np.ndarray] = None

    @property
    def has_video(self) -> bool:
        return (
            self.frame is not None
            and self.motion_map is not None
            and self.edge_map is not None
        )


class LayerUpdater(Protocol):
    """
    Protocol for per-tick layer update strategies.

    Implementations mutate the layer's arrays in place and must not
    reallocate them.
    """

    def update(self, layer: "ParticleLayer", context: TickContext) -> None:
        """Advance the layer by one tick."""
        ...


class ParticleLayer:
    """
    Fixed-size particle layer stored as parallel arrays.

    Attributes:
        kind: Immutable layer identity
        count: Number of particles
        positions: Flat float32 array (3 * count), mutated every tick
        base_positions: Flat float32 array (3 * count), fixed rest positions
        colors: Flat float32 array (3 * count), derived every tick
        size: Point size in world units
        opacity: Render opacity
        updater: Per-tick update strategy
    """

    def __init__(
        self,
        kind: LayerKind,
        base_positions: np.ndarray,
        updater: LayerUpdater,
        initial_color: Tuple[float, float, float] = (1.0, 1.0, 1.0),
        size: float = 0.02,
        opacity: float = 1.0,
    ) -> None:
        """
        Initialize a layer from its rest positions.

        Args:
            kind: Layer identity
            base_positions: (count, 3) or flat (3 * count) rest positions
            updater: Update strategy
            initial_color: Color every particle starts with
            size: Point size
            opacity: Render opacity in [0, 1]

        Raises:
            ValueError: If the arrays or parameters are invalid
        """
        base = np.asarray(base_positions, dtype=np.float32).reshape(-1)
        if base.size == 0 or base.size % 3 != 0:
            raise ValueError(
                f"base_positions must hold 3 floats per particle, got {base.size} values"
            )
        if not 0 <= opacity <= 1:
            raise ValueError(f"opacity must be in [0, 1], got {opacity}")
        if size <= 0:
            raise ValueError(f"size must be > 0, got {size}")

        self._kind = LayerKind(kind)
        self._count = base.size // 3
        self.base_positions = base.copy()
        self.positions = base.copy()
        self.colors = np.empty_like(base)
        self.colors.reshape(-1, 3)[:] = initial_color
        self.size = size
        self.opacity = opacity
        self.updater = updater

        logger.info(
            f"ParticleLayer initialized: kind={self._kind.value}, "
            f"count={self._count}, updater={type(updater).__name__}"
        )

    @property
    def kind(self) -> LayerKind:
        return self._kind

    @property
    def count(self) -> int:
        return self._count

    @property
    def positions3(self) -> np.ndarray:
        """(count, 3) view of positions."""
        return self.positions.reshape(-1, 3)

    @property
    def base_positions3(self) -> np.ndarray:
        """(count, 3) view of base positions."""
        return self.base_positions.reshape(-1, 3)

    @property
    def colors3(self) -> np.ndarray:
        """(count, 3) view of colors."""
        return self.colors.reshape(-1, 3)

    def update(self, context: TickContext) -> None:
        """Advance one tick using the layer's updater."""
        self.updater.update(self, context)

    def snapshot(self, controls: SceneControls) -> LayerSnapshot:
        """
        Build the render payload for this tick.

        Args:
            controls: Current controls (color, visibility, blend, scale)

        Returns:
            LayerSnapshot referencing the live arrays
        """
        settings = controls.layer(self._kind)
        return LayerSnapshot(
            kind=self._kind,
            positions=self.positions,
            colors=self.colors,
            size=self.size,
            blending=resolve_blending(settings.blend_mode, controls.enable_blend_mode),
            opacity=self.opacity,
            visible=settings.visible,
            scale=settings.scale,
            tint=settings.rgb,
        )

    def __repr__(self) -> str:
        return f"ParticleLayer(kind={self._kind.value}, count={self._count})"
