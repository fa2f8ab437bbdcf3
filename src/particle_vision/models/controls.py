"""
Scene Controls
==============

The configuration surface the engine re-reads on every tick.

Controls are plain values owned by whatever UI drives the scene (the
HTTP service, the OpenCV viewer, a test). Changing a control never
triggers invalidation inside the engine; the next tick simply reads the
new value.

Example:
    from particle_vision.models.controls import SceneControls

    controls = SceneControls()
    controls.hide_static = True
    controls = controls.merged({"motion": {"color": "#FF0000"}})
"""

from typing import Any, Dict, Tuple

from pydantic import BaseModel, Field, field_validator

from particle_vision.models.color import normalize_hex_color, parse_hex_color
from particle_vision.models.layer import LayerKind, LayerSettings


class SceneControls(BaseModel):
    """
    Per-tick controls for all layers.

    Attributes:
        motion: Settings for the motion-reactive layer
        static: Settings for the static ambient layer
        background: Settings for the background ambient layer
        non_moving_color: Color of motion-layer particles over still pixels
        hide_static: Black out motion-layer particles over still pixels
        enable_blend_mode: Honor per-layer blend modes (else additive)
    """

    motion: LayerSettings = Field(
        default_factory=lambda: LayerSettings(color="#60A5FA"),
    )
    static: LayerSettings = Field(
        default_factory=lambda: LayerSettings(color="#EC4899"),
    )
    background: LayerSettings = Field(
        default_factory=lambda: LayerSettings(color="#A855F7"),
    )
    non_moving_color: str = Field(
        default="#374151",
        description="Color for motion-layer particles over still pixels",
    )
    hide_static: bool = Field(
        default=False,
        description="Render still motion-layer particles as black",
    )
    enable_blend_mode: bool = Field(
        default=False,
        description="Honor per-layer blend modes",
    )

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True

    @field_validator("non_moving_color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        return normalize_hex_color(value)

    @property
    def non_moving_rgb(self) -> Tuple[float, float, float]:
        """Non-moving color as normalized RGB."""
        return parse_hex_color(self.non_moving_color)

    def layer(self, kind: LayerKind) -> LayerSettings:
        """Settings for the given layer."""
        return getattr(self, kind.value)

    def merged(self, update: Dict[str, Any]) -> "SceneControls":
        """
        Return a new SceneControls with a partial update applied.

        Nested layer settings are merged field by field, so
        {"motion": {"visible": False}} keeps the motion color.

        Raises:
            pydantic.ValidationError: If the merged controls are invalid
        """
        data = self.model_dump(mode="json")
        for key, value in update.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key].update(value)
            else:
                data[key] = value
        return SceneControls.model_validate(data)

