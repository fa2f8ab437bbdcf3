"""
Render Module
=============

Render sinks fed by ParticleEngine.

This module provides:
    - PointCloudCompositor: Rasterizes layers into an image (viewer, previews)
    - SnapshotStore: Keeps a private copy of the latest layers (service)
"""

from particle_vision.render.compositor import PointCloudCompositor
from particle_vision.render.store import SnapshotStore, decode_buffer, encode_buffer


__all__ = [
    "PointCloudCompositor",
    "SnapshotStore",
    "encode_buffer",
    "decode_buffer",
]
