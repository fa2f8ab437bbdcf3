"""
Frame Sampler Tests
===================

Tests for FrameSampler and the in-memory video source.
"""

import numpy as np
import pytest

from particle_vision.models.frame import NOT_READY, SampledFrame
from particle_vision.video import ArrayVideoSource, FrameSampler

from conftest import uniform_rgb


class TestArrayVideoSource:
    """Tests for ArrayVideoSource."""

    def test_empty_source_not_ready(self):
        """A source without frames is not ready and has no dimensions."""
        source = ArrayVideoSource()
        assert not source.is_ready()
        assert source.dimensions is None

    def test_push_sets_dimensions(self):
        """Dimensions are reported as (width, height)."""
        source = ArrayVideoSource(uniform_rgb(0, 640, 480))
        assert source.is_ready()
        assert source.dimensions == (640, 480)
        assert source.frames_pushed == 1

    def test_clear(self):
        """clear() makes the source not ready again."""
        source = ArrayVideoSource(uniform_rgb(0, 64, 36))
        source.clear()
        assert not source.is_ready()

    def test_rejects_bad_shape(self):
        """Grayscale 2D arrays are rejected."""
        with pytest.raises(ValueError):
            ArrayVideoSource().push(np.zeros((10, 10), dtype=np.uint8))

    def test_rejects_bad_dtype(self):
        """Only uint8 frames are accepted."""
        with pytest.raises(ValueError):
            ArrayVideoSource().push(np.zeros((10, 10, 3), dtype=np.float32))

    def test_draw_same_size_is_exact(self):
        """A frame already at buffer size is copied verbatim, alpha opaque."""
        rng = np.random.default_rng(4)
        rgb = rng.integers(0, 256, size=(9, 16, 3), dtype=np.uint8)
        buffer = np.zeros((9, 16, 4), dtype=np.uint8)
        ArrayVideoSource(rgb).draw_into(buffer)

        np.testing.assert_array_equal(buffer[..., :3], rgb)
        assert np.all(buffer[..., 3] == 255)


class TestFrameSampler:
    """Tests for FrameSampler.sample."""

    def test_no_source(self):
        """No source is reported as NOT_READY, not an error."""
        sampler = FrameSampler()
        assert sampler.sample(None) is NOT_READY
        assert sampler.not_ready_count == 1

    def test_source_without_frame(self):
        """A source that has not decoded yet is NOT_READY."""
        sampler = FrameSampler()
        assert sampler.sample(ArrayVideoSource()) is NOT_READY

    def test_sixteen_by_nine(self):
        """A 1280x720 source samples to 128x72."""
        sampler = FrameSampler()
        frame = sampler.sample(ArrayVideoSource(uniform_rgb(50, 1280, 720)))

        assert isinstance(frame, SampledFrame)
        assert frame.pixels.shape == (72, 128, 4)
        assert frame.pixels.dtype == np.uint8
        assert frame.aspect_ratio == pytest.approx(16 / 9)

    def test_four_by_three(self):
        """A 640x480 source samples to 128x96."""
        frame = FrameSampler().sample(ArrayVideoSource(uniform_rgb(50, 640, 480)))
        assert frame.shape == (96, 128)

    def test_uniform_color_preserved(self):
        """Area resampling keeps a flat color flat."""
        frame = FrameSampler().sample(ArrayVideoSource(uniform_rgb((10, 120, 230), 1280, 720)))
        assert np.all(frame.pixels[..., 0] == 10)
        assert np.all(frame.pixels[..., 1] == 120)
        assert np.all(frame.pixels[..., 2] == 230)
        assert np.all(frame.pixels[..., 3] == 255)

    def test_same_aspect_keeps_generation(self):
        """A new resolution with the same aspect ratio does not reallocate."""
        sampler = FrameSampler()
        source = ArrayVideoSource(uniform_rgb(0, 1280, 720))
        first = sampler.sample(source)
        source.push(uniform_rgb(0, 1920, 1080))
        second = sampler.sample(source)

        assert first.generation == second.generation == 1

    def test_aspect_change_bumps_generation(self):
        """An aspect ratio change reallocates with a new generation."""
        sampler = FrameSampler()
        source = ArrayVideoSource(uniform_rgb(0, 1280, 720))
        first = sampler.sample(source)
        source.push(uniform_rgb(0, 640, 480))
        second = sampler.sample(source)

        assert second.generation == first.generation + 1
        assert second.shape == (96, 128)

    def test_frames_are_independent(self):
        """Each sampled frame owns its pixels."""
        sampler = FrameSampler()
        source = ArrayVideoSource(uniform_rgb(0, 128, 72))
        first = sampler.sample(source)
        source.push(uniform_rgb(255, 128, 72))
        sampler.sample(source)

        assert np.all(first.pixels[..., :3] == 0)

    def test_reset_forces_new_generation(self):
        """After reset() the next sample starts a new generation."""
        sampler = FrameSampler()
        source = ArrayVideoSource(uniform_rgb(0, 1280, 720))
        first = sampler.sample(source)
        sampler.reset()
        second = sampler.sample(source)

        assert second.generation > first.generation

    @pytest.mark.parametrize("width", [0, 129])
    def test_invalid_width(self, width):
        """Sample width must be within 1..128."""
        with pytest.raises(ValueError):
            FrameSampler(sample_width=width)
