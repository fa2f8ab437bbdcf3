"""
Particles Module
================

Particle layers, their update strategies and pointer interaction.

This module provides:
    - ParticleLayer: Fixed-size parallel-array state container
    - LayerUpdater: Protocol for per-tick update strategies
    - MotionReactiveUpdater: Video-driven classification update
    - BackgroundDriftUpdater, StaticPulseUpdater: Time-driven ambient updates
    - InteractionField: Pointer-proximity repulsion

Example:
    from particle_vision.particles import create_motion_layer, TickContext

    layer = create_motion_layer(count=10000, seed=7)
    layer.update(context)
"""

from particle_vision.particles.base import (
    ClassificationThresholds,
    LayerUpdater,
    ParticleLayer,
    TickContext,
    grid_coordinates,
)
from particle_vision.particles.classify import (
    Classification,
    classify,
    classify_array,
    count_classes,
)
from particle_vision.particles.motion_layer import (
    MotionReactiveUpdater,
    create_motion_layer,
    sample_indices,
)
from particle_vision.particles.ambient import (
    BackgroundDriftUpdater,
    StaticPulseUpdater,
    create_background_layer,
    create_static_layer,
)
from particle_vision.particles.interaction import InteractionField

__all__ = [
    # Base
    "ParticleLayer",
    "LayerUpdater",
    "TickContext",
    "ClassificationThresholds",
    "grid_coordinates",
    # Classification
    "Classification",
    "classify",
    "classify_array",
    "count_classes",
    # Layers
    "MotionReactiveUpdater",
    "create_motion_layer",
    "sample_indices",
    "BackgroundDriftUpdater",
    "StaticPulseUpdater",
    "create_background_layer",
    "create_static_layer",
    # Interaction
    "InteractionField",
]
