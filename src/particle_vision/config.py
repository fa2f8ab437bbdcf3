"""
Particle Vision Configuration
=============================

This module handles configuration loading for the particle engine.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PARTICLE_VISION_VIDEO_DEVICE     -> video.device
    PARTICLE_VISION_TARGET_FPS       -> loop.target_fps
    PARTICLE_VISION_OFFLOAD          -> loop.offload
    PARTICLE_VISION_MOTION_THRESHOLD -> motion.motion_threshold
    PARTICLE_VISION_STATIC_THRESHOLD -> motion.static_threshold
    PARTICLE_VISION_HIDE_STATIC      -> controls.hide_static
    PARTICLE_VISION_SEED             -> seed
    PARTICLE_VISION_PORT             -> server.port
    PARTICLE_VISION_LOG_LEVEL        -> logging.level
    PORT                             -> server.port (Cloud Run)

Example:
    from particle_vision.config import settings

    print(settings.motion.motion_threshold)
    print(settings.layers.motion.count)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator

from particle_vision.models.controls import SceneControls
from particle_vision.models.layer import BlendMode, LayerSettings


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Application identification configuration."""

    name: str = Field(default="particle-vision", description="Application name")
    version: str = Field(default="v0.1.0", description="Application version")


class VideoConfig(BaseModel):
    """Video source configuration."""

    device: Union[int, str] = Field(
        default=0,
        description="Camera index or video file path",
    )
    requested_width: int = Field(default=1280, ge=1, description="Preferred capture width")
    requested_height: int = Field(default=720, ge=1, description="Preferred capture height")
    sample_width: int = Field(
        default=128,
        ge=8,
        le=128,
        description="Width of the sampled analysis frame",
    )


class MotionConfig(BaseModel):
    """Motion classification configuration."""

    motion_threshold: float = Field(
        default=0.08,
        gt=0,
        description="Smoothed motion above this (with an edge) is MOVING",
    )
    static_threshold: float = Field(
        default=0.03,
        ge=0,
        description="Smoothed motion below this is STATIC",
    )
    edge_threshold: float = Field(
        default=0.1,
        ge=0,
        description="Edge strength above this qualifies a pixel as MOVING",
    )
    smoothing: float = Field(
        default=0.7,
        gt=0,
        le=1.0,
        description="Weight of raw motion in exponential smoothing (0, 1]",
    )

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "MotionConfig":
        if self.static_threshold > self.motion_threshold:
            raise ValueError(
                f"static_threshold ({self.static_threshold}) must not exceed "
                f"motion_threshold ({self.motion_threshold})"
            )
        return self


class LayerConfig(BaseModel):
    """Construction-time configuration for one particle layer."""

    enabled: bool = Field(default=True, description="Build this layer")
    count: int = Field(default=10000, ge=1, description="Particle count")
    size: float = Field(default=0.02, gt=0, description="Point size")
    opacity: float = Field(default=1.0, ge=0, le=1.0, description="Render opacity")
    color: str = Field(default="#FFFFFF", description="Initial layer color")
    blend_mode: BlendMode = Field(default=BlendMode.NORMAL, description="Initial blend mode")
    visible: bool = Field(default=True, description="Initially visible")
    scale: float = Field(default=1.0, gt=0, description="Initial render scale")

    def settings(self) -> LayerSettings:
        """Initial mutable settings for this layer."""
        return LayerSettings(
            color=self.color,
            blend_mode=self.blend_mode,
            visible=self.visible,
            scale=self.scale,
        )


class LayersConfig(BaseModel):
    """All particle layers."""

    motion: LayerConfig = Field(
        default_factory=lambda: LayerConfig(
            count=45000, size=0.025, opacity=0.9, color="#60A5FA"
        )
    )
    static: LayerConfig = Field(
        default_factory=lambda: LayerConfig(
            count=15000, size=0.02, opacity=0.6, color="#EC4899"
        )
    )
    background: LayerConfig = Field(
        default_factory=lambda: LayerConfig(
            count=20000, size=0.015, opacity=0.4, color="#A855F7"
        )
    )
    motion_aspect_ratio: float = Field(
        default=16.0 / 9.0,
        gt=0,
        description="Aspect ratio of the motion layer grid",
    )
    static_drift: float = Field(
        default=0.05,
        ge=0,
        description="Circular drift amplitude of the static layer",
    )


class ControlsConfig(BaseModel):
    """Initial values of the global controls."""

    non_moving_color: str = Field(default="#374151", description="Still-pixel color")
    hide_static: bool = Field(default=False, description="Hide still motion particles")
    enable_blend_mode: bool = Field(default=False, description="Honor per-layer blend modes")


class InteractionConfig(BaseModel):
    """Pointer interaction configuration."""

    radius: float = Field(default=2.0, gt=0, description="Influence radius (world units)")
    strength: float = Field(default=0.05, ge=0, description="Force at distance 0")
    pointer_scale: float = Field(
        default=5.0,
        gt=0,
        description="World units per normalized pointer unit",
    )


class LoopConfig(BaseModel):
    """Tick loop configuration."""

    target_fps: float = Field(default=60.0, gt=0, le=240, description="Tick rate")
    offload: bool = Field(
        default=False,
        description="Run ticks on a worker thread (drop when busy)",
    )
    log_every_n_ticks: int = Field(default=300, ge=1, description="Summary log interval")


class RenderConfig(BaseModel):
    """Reference compositor configuration."""

    width: int = Field(default=1280, ge=16, description="Output width")
    height: int = Field(default=720, ge=16, description="Output height")
    background_color: str = Field(default="#0A0E1A", description="Scene background")
    fov_degrees: float = Field(default=60.0, gt=0, lt=180, description="Vertical FOV")
    camera_z: float = Field(default=8.0, gt=0, description="Camera distance on Z")


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")
    broadcast_hz: float = Field(
        default=15.0,
        gt=0,
        le=60,
        description="Layer snapshot push rate on /ws/layers",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for Particle Vision.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    video: VideoConfig = Field(default_factory=VideoConfig)
    motion: MotionConfig = Field(default_factory=MotionConfig)
    layers: LayersConfig = Field(default_factory=LayersConfig)
    controls: ControlsConfig = Field(default_factory=ControlsConfig)
    interaction: InteractionConfig = Field(default_factory=InteractionConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    seed: Optional[int] = Field(
        default=None,
        description="Seed for particle jitter and offsets (None = random)",
    )

    def initial_controls(self) -> SceneControls:
        """Build the starting SceneControls from configuration."""
        return SceneControls(
            motion=self.layers.motion.settings(),
            static=self.layers.static.settings(),
            background=self.layers.background.settings(),
            non_moving_color=self.controls.non_moving_color,
            hide_static=self.controls.hide_static,
            enable_blend_mode=self.controls.enable_blend_mode,
        )


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    # Build settings object
    settings = Settings.model_validate(config_data)

    return settings


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Video settings
    if env_device := os.environ.get("PARTICLE_VISION_VIDEO_DEVICE"):
        device: Union[int, str] = int(env_device) if env_device.isdigit() else env_device
        config_data.setdefault("video", {})["device"] = device

    # Loop settings
    if env_fps := os.environ.get("PARTICLE_VISION_TARGET_FPS"):
        config_data.setdefault("loop", {})["target_fps"] = float(env_fps)
    if env_offload := os.environ.get("PARTICLE_VISION_OFFLOAD"):
        config_data.setdefault("loop", {})["offload"] = _parse_bool(env_offload)

    # Threshold overrides
    if env_mt := os.environ.get("PARTICLE_VISION_MOTION_THRESHOLD"):
        config_data.setdefault("motion", {})["motion_threshold"] = float(env_mt)
    if env_st := os.environ.get("PARTICLE_VISION_STATIC_THRESHOLD"):
        config_data.setdefault("motion", {})["static_threshold"] = float(env_st)

    # Controls
    if env_hide := os.environ.get("PARTICLE_VISION_HIDE_STATIC"):
        config_data.setdefault("controls", {})["hide_static"] = _parse_bool(env_hide)

    if env_seed := os.environ.get("PARTICLE_VISION_SEED"):
        config_data["seed"] = int(env_seed)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("PARTICLE_VISION_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("PARTICLE_VISION_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
