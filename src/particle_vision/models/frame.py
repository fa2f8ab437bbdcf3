"""
Sampled Frame Model
===================

Fixed-resolution frame representation shared by the analysis stages.

This module defines the SampledFrame class that is used as the interface
between the FrameSampler and the downstream edge, motion and particle
stages, plus the NOT_READY sentinel returned when no frame is available.

Design Rules:
    - This is the ONLY frame format passed to analysis stages
    - Pixels are raw 8-bit RGBA as decoded (no color correction)
    - Replaced wholesale each tick; stages never mutate it
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class NotReady(Enum):
    """Sentinel type for a video source that has not decoded a frame yet."""

    TOKEN = "not_ready"

    def __repr__(self) -> str:
        return "NOT_READY"


NOT_READY = NotReady.TOKEN


@dataclass(frozen=True, slots=True, eq=False)
class SampledFrame:
    """
    Fixed-resolution RGBA snapshot of the video source.

    Attributes:
        pixels: RGBA buffer, shape (height, width, 4), dtype uint8
        aspect_ratio: Source aspect ratio (width / height) used to size the buffer
        generation: Buffer allocation counter. Changes whenever the sampler
            reallocates its buffer, so consumers holding cross-frame state
            know the previous frame is no longer comparable.
    """

    pixels: np.ndarray
    aspect_ratio: float
    generation: int = 0

    @property
    def width(self) -> int:
        """Frame width in pixels."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Frame height in pixels."""
        return int(self.pixels.shape[0])

    @property
    def shape(self) -> tuple:
        """(height, width) of the analysis grid."""
        return (self.height, self.width)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return (
            f"SampledFrame({self.width}x{self.height}, "
            f"aspect={self.aspect_ratio:.3f}, "
            f"generation={self.generation})"
        )
