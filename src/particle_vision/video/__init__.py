"""
Video Module
============

Video source capability and fixed-resolution frame sampling.

This module provides the acquisition edge of the pipeline:
    - VideoSource: Protocol for readable frame sources
    - OpenCVVideoSource: Camera/file source decoded on a daemon thread
    - ArrayVideoSource: Frames pushed from memory
    - FrameSampler: Aspect-corrected 128-wide RGBA sampling

Example:
    from particle_vision.video import ArrayVideoSource, FrameSampler

    sampler = FrameSampler()
    frame = sampler.sample(ArrayVideoSource(image))
"""

from particle_vision.video.source import (
    ArrayVideoSource,
    OpenCVVideoSource,
    VideoSource,
)
from particle_vision.video.sampler import SAMPLE_WIDTH, FrameSampler


__all__ = [
    "VideoSource",
    "OpenCVVideoSource",
    "ArrayVideoSource",
    "FrameSampler",
    "SAMPLE_WIDTH",
]
