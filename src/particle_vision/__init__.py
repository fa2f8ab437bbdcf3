"""
Particle Vision
===============

Motion-reactive particle simulation driven by a live camera feed.

This package turns sampled video frames into animated point layers whose
position and color react to what the camera sees. Each animation tick
samples the current frame, detects edges and motion, classifies the pixel
driving every particle and advances particle state in place.

Components:
    - video: Video source capability and fixed-resolution frame sampling
    - vision: Edge detection and temporally smoothed motion estimation
    - particles: Particle layers, per-layer update strategies, pointer interaction
    - engine: Synchronous per-tick pipeline driver
    - runner: Asyncio tick loop with optional worker offload
    - render: Reference point-cloud compositor
    - observability: Per-tick classification analytics

Example:
    from particle_vision.engine import ParticleEngine
    from particle_vision.video import OpenCVVideoSource

    engine = ParticleEngine.from_settings()
    source = OpenCVVideoSource(device=0)
    source.open()
    engine.set_source(source)
    result = engine.tick(pointer=None, elapsed=0.0)
"""

__version__ = "0.1.0"
__author__ = "Particle Vision Project"

__all__ = [
    "__version__",
]
