"""
Data Models
===========

Frame, layer and control models for Particle Vision.

This module re-exports all data models for convenient access.

Models:
    Frame:
        - SampledFrame: Fixed-resolution RGBA snapshot
        - NOT_READY: Sentinel for a source without a decoded frame

    Layer:
        - LayerKind: Layer identity (motion, static, background)
        - BlendMode: Compositing mode
        - LayerSettings: Mutable per-layer visual settings
        - LayerSnapshot: Per-tick render payload

    Controls:
        - SceneControls: The per-tick configuration surface
"""

from particle_vision.models.frame import NOT_READY, NotReady, SampledFrame
from particle_vision.models.layer import (
    BlendMode,
    LayerKind,
    LayerSettings,
    LayerSnapshot,
    resolve_blending,
)
from particle_vision.models.controls import SceneControls
from particle_vision.models.color import parse_hex_color

__all__ = [
    # Frame
    "SampledFrame",
    "NotReady",
    "NOT_READY",
    # Layer
    "LayerKind",
    "BlendMode",
    "LayerSettings",
    "LayerSnapshot",
    "resolve_blending",
    # Controls
    "SceneControls",
    "parse_hex_color",
]
