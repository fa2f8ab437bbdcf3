"""
Layer Models
============

Identity, visual settings and render payload for particle layers.

Core Concepts:
    - LayerKind: Immutable layer identity (motion, static, background)
    - BlendMode: How a layer is composited onto the layers behind it
    - LayerSettings: Externally mutable visual settings, re-read every tick
    - LayerSnapshot: Per-tick payload handed to a render sink

Blend Resolution:
    Blending is only honored when the global blend-mode switch is on.
    With the switch off, or with no mode selected, every layer renders
    additively. A selected "screen" also resolves to additive; sinks only
    see SCREEN when a snapshot is built with it directly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator

from particle_vision.models.color import normalize_hex_color, parse_hex_color


class LayerKind(str, Enum):
    """
    Layer identity, ordered back-to-front.

    Attributes:
        BACKGROUND: Farthest ambient plane, time-driven drift
        STATIC: Middle ambient plane, time-driven pulsing
        MOTION: Closest plane, driven by the live video
    """

    BACKGROUND = "background"
    STATIC = "static"
    MOTION = "motion"


class BlendMode(str, Enum):
    """Compositing modes understood by render sinks."""

    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    ADDITIVE = "additive"


def resolve_blending(mode: Optional[BlendMode], enable_blend_mode: bool) -> BlendMode:
    """
    Resolve the effective blending for a layer.

    Args:
        mode: Blend mode selected for the layer (None = unset)
        enable_blend_mode: Global switch for per-layer blend modes

    Returns:
        The blend mode the render sink should use
    """
    if not enable_blend_mode or mode is None:
        return BlendMode.ADDITIVE
    mode = BlendMode(mode)
    if mode == BlendMode.SCREEN:
        return BlendMode.ADDITIVE
    return mode


class LayerSettings(BaseModel):
    """
    Externally mutable visual settings for one layer.

    Attributes:
        color: Layer color as "#RRGGBB"
        blend_mode: Selected blend mode
        visible: Whether the layer is rendered
        scale: Uniform scale applied by the render sink
    """

    color: str = Field(default="#FFFFFF", description="Layer color (hex)")
    blend_mode: BlendMode = Field(
        default=BlendMode.NORMAL,
        description="Blend mode used when blending is enabled",
    )
    visible: bool = Field(default=True, description="Render this layer")
    scale: float = Field(default=1.0, gt=0, description="Render scale factor")

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        return normalize_hex_color(value)

    @property
    def rgb(self) -> Tuple[float, float, float]:
        """Layer color as normalized RGB."""
        return parse_hex_color(self.color)


@dataclass(frozen=True, slots=True, eq=False)
class LayerSnapshot:
    """
    Render payload for one layer on one tick.

    The arrays are the layer's live buffers; sinks must consume them
    before the next tick starts and must never write to them.

    Attributes:
        kind: Layer identity
        positions: Flat float32 array, 3 floats per particle
        colors: Flat float32 array, 3 floats per particle
        size: Point size in world units
        blending: Resolved blend mode
        opacity: Layer opacity in [0, 1]
        visible: Whether to draw the layer
        scale: Uniform scale factor
        tint: Layer color multiplied into vertex colors by the sink
    """

    kind: LayerKind
    positions: np.ndarray
    colors: np.ndarray
    size: float
    blending: BlendMode
    opacity: float
    visible: bool
    scale: float
    tint: Tuple[float, float, float]

    @property
    def count(self) -> int:
        """Number of particles in the snapshot."""
        return int(self.positions.shape[0] // 3)

    def __repr__(self) -> str:
        return (
            f"LayerSnapshot(kind={self.kind.value}, count={self.count}, "
            f"blending={self.blending.value}, visible={self.visible})"
        )
