"""
Test Configuration
==================

Pytest fixtures and test configuration for Particle Vision.
"""

import numpy as np
import pytest

from particle_vision.engine import ParticleEngine
from particle_vision.models.controls import SceneControls
from particle_vision.models.frame import SampledFrame
from particle_vision.particles import (
    ClassificationThresholds,
    TickContext,
    create_background_layer,
    create_motion_layer,
    create_static_layer,
)
from particle_vision.video import ArrayVideoSource


def make_frame(rgb: np.ndarray, generation: int = 1) -> SampledFrame:
    """Wrap an (H, W, 3) uint8 array as an opaque SampledFrame."""
    height, width = rgb.shape[:2]
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., :3] = rgb
    pixels[..., 3] = 255
    return SampledFrame(pixels=pixels, aspect_ratio=width / height, generation=generation)


def uniform_rgb(value, width: int = 128, height: int = 72) -> np.ndarray:
    """(H, W, 3) uint8 image filled with one color."""
    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[:] = value
    return rgb


def block_rgb(
    value: int = 255,
    width: int = 128,
    height: int = 72,
    top: int = 26,
    left: int = 54,
    size: int = 20,
) -> np.ndarray:
    """Black image with one square block of the given gray value."""
    rgb = uniform_rgb(0, width, height)
    rgb[top:top + size, left:left + size] = value
    return rgb


@pytest.fixture
def thresholds():
    """Default classification thresholds."""
    return ClassificationThresholds()


@pytest.fixture
def controls():
    """Default scene controls."""
    return SceneControls()


@pytest.fixture
def idle_context(controls, thresholds):
    """Tick context with no video."""
    return TickContext(elapsed=0.0, controls=controls, thresholds=thresholds)


@pytest.fixture
def array_source():
    """In-memory source holding a uniform gray 1280x720 frame."""
    return ArrayVideoSource(uniform_rgb(128, width=1280, height=720))


@pytest.fixture
def small_layers():
    """Small seeded layer set, back-to-front."""
    return [
        create_background_layer(count=400, seed=3),
        create_static_layer(count=300, seed=2),
        create_motion_layer(count=2500, seed=1),
    ]


@pytest.fixture
def small_engine(small_layers):
    """Engine over the small layer set, no source bound."""
    return ParticleEngine(layers=small_layers)
