"""
Frame Sampler
=============

Pulls the current video frame into a fixed-resolution RGBA buffer.

The sampler owns an off-screen buffer of width 128 whose height follows
the source aspect ratio. The buffer is reallocated only when the
observed aspect ratio changes; every reallocation bumps the frame
generation so stateful consumers (the MotionEstimator) know the
previous frame can no longer be diffed against.

Key Design Decisions:
    - Not ready is a normal per-tick outcome, returned as NOT_READY
    - No color correction; pixels are raw 8-bit RGBA as decoded
    - Each returned SampledFrame owns a copy of the buffer
"""

import logging
from typing import Optional, Union

import numpy as np

from particle_vision.models.frame import NOT_READY, NotReady, SampledFrame
from particle_vision.video.source import VideoSource


logger = logging.getLogger(__name__)


SAMPLE_WIDTH = 128


class FrameSampler:
    """
    Aspect-corrected fixed-width frame sampler.

    Attributes:
        sample_width: Width of the sampled frame in pixels
        aspect_ratio: Last observed source aspect ratio (None before first sample)
        generation: Number of buffer reallocations so far
    """

    def __init__(self, sample_width: int = SAMPLE_WIDTH) -> None:
        """
        Initialize frame sampler.

        Args:
            sample_width: Sampled frame width (1..128)

        Raises:
            ValueError: If sample_width is out of range
        """
        if not 1 <= sample_width <= SAMPLE_WIDTH:
            raise ValueError(
                f"sample_width must be in [1, {SAMPLE_WIDTH}], got {sample_width}"
            )

        self.sample_width = sample_width

        self._aspect_ratio: Optional[float] = None
        self._buffer: Optional[np.ndarray] = None
        self._generation: int = 0
        self._not_ready_count: int = 0

        logger.info(f"FrameSampler initialized: width={sample_width}")

    @property
    def aspect_ratio(self) -> Optional[float]:
        return self._aspect_ratio

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def not_ready_count(self) -> int:
        """Ticks on which the source had no decoded frame."""
        return self._not_ready_count

    def sample(self, source: Optional[VideoSource]) -> Union[SampledFrame, NotReady]:
        """
        Sample the source's current frame.

        Args:
            source: Video source, or None when no source is active

        Returns:
            SampledFrame, or NOT_READY if the source has no decoded frame
        """
        if source is None or not source.is_ready():
            self._not_ready_count += 1
            return NOT_READY

        dimensions = source.dimensions
        if dimensions is None or dimensions[0] <= 0 or dimensions[1] <= 0:
            self._not_ready_count += 1
            return NOT_READY

        source_width, source_height = dimensions
        aspect_ratio = source_width / source_height

        if self._buffer is None or aspect_ratio != self._aspect_ratio:
            self._reallocate(aspect_ratio)

        source.draw_into(self._buffer)

        return SampledFrame(
            pixels=self._buffer.copy(),
            aspect_ratio=aspect_ratio,
            generation=self._generation,
        )

    def _reallocate(self, aspect_ratio: float) -> None:
        """Resize the off-screen buffer for a new aspect ratio."""
        height = max(1, round(self.sample_width / aspect_ratio))
        previous = self._aspect_ratio

        self._buffer = np.zeros((height, self.sample_width, 4), dtype=np.uint8)
        self._aspect_ratio = aspect_ratio
        self._generation += 1

        if previous is None:
            logger.info(
                f"Sampling buffer allocated: {self.sample_width}x{height} "
                f"(aspect={aspect_ratio:.4f})"
            )
        else:
            logger.info(
                f"Dimension change: aspect {previous:.4f} -> {aspect_ratio:.4f}, "
                f"sampling buffer now {self.sample_width}x{height}"
            )

    def reset(self) -> None:
        """Forget the observed aspect ratio and drop the buffer."""
        self._aspect_ratio = None
        self._buffer = None
        logger.debug("FrameSampler reset")
