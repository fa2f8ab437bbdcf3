"""
Edge Detector Tests
===================

Tests for luma conversion, interior blur, Sobel magnitude and the
EdgeDetector as a whole.
"""

import numpy as np

from particle_vision.vision.edges import (
    EdgeDetector,
    gaussian_blur_interior,
    sobel_magnitude_interior,
    to_luma,
)

from conftest import make_frame, uniform_rgb


class TestLuma:
    """Tests for to_luma."""

    def test_white_is_one(self):
        """Pure white maps to luma 1."""
        luma = to_luma(uniform_rgb(255, 4, 4))
        np.testing.assert_allclose(luma, 1.0)

    def test_channel_weights(self):
        """Pure red/green/blue map to their luma weights."""
        rgb = np.zeros((1, 3, 3), dtype=np.uint8)
        rgb[0, 0, 0] = 255
        rgb[0, 1, 1] = 255
        rgb[0, 2, 2] = 255
        np.testing.assert_allclose(to_luma(rgb)[0], [0.299, 0.587, 0.114])

    def test_alpha_ignored(self):
        """The alpha channel does not contribute."""
        rgba = np.zeros((2, 2, 4), dtype=np.uint8)
        rgba[..., 3] = 255
        np.testing.assert_allclose(to_luma(rgba), 0.0)


class TestInteriorFilters:
    """Tests for the border policy of the blur and Sobel stages."""

    def test_blur_border_is_zero(self):
        """Blur leaves a 2-pixel zero border."""
        blurred = gaussian_blur_interior(np.ones((10, 12)))
        assert np.all(blurred[:2, :] == 0)
        assert np.all(blurred[-2:, :] == 0)
        assert np.all(blurred[:, :2] == 0)
        assert np.all(blurred[:, -2:] == 0)
        np.testing.assert_allclose(blurred[2:-2, 2:-2], 1.0)

    def test_blur_preserves_constant_interior(self):
        """Kernel is normalized, so a constant field stays constant inside."""
        blurred = gaussian_blur_interior(np.full((9, 9), 0.4))
        np.testing.assert_allclose(blurred[2:-2, 2:-2], 0.4)

    def test_sobel_border_is_zero(self):
        """Sobel leaves a 1-pixel zero border."""
        field = np.tile(np.arange(8, dtype=np.float64), (8, 1))
        magnitude = sobel_magnitude_interior(field)
        assert np.all(magnitude[0, :] == 0)
        assert np.all(magnitude[-1, :] == 0)
        assert np.all(magnitude[:, 0] == 0)
        assert np.all(magnitude[:, -1] == 0)

    def test_sobel_on_linear_ramp(self):
        """A ramp of slope 1 along x gives magnitude 8 (unnormalized Sobel)."""
        field = np.tile(np.arange(8, dtype=np.float64), (8, 1))
        magnitude = sobel_magnitude_interior(field)
        np.testing.assert_allclose(magnitude[1:-1, 1:-1], 8.0)

    def test_tiny_fields_are_all_zero(self):
        """Fields too small for an interior produce zeros."""
        assert not gaussian_blur_interior(np.ones((4, 4))).any()
        assert not sobel_magnitude_interior(np.ones((2, 2))).any()


class TestEdgeDetector:
    """Tests for EdgeDetector.detect."""

    def test_uniform_frame_has_no_interior_edges(self):
        """A flat image has zero edge strength away from the frame border."""
        edges = EdgeDetector().detect(make_frame(uniform_rgb(200)))
        assert edges.shape == (72, 128)
        assert not edges[3:-3, 3:-3].any()

    def test_blur_border_shows_up_near_frame_edge(self):
        """The zeroed blur border reads as a gradient just inside the frame."""
        edges = EdgeDetector().detect(make_frame(uniform_rgb(200)))
        assert edges[2, 64] > 0
        assert edges[36, 2] > 0

    def test_step_edge_detected(self):
        """A vertical black/white boundary produces strong edges near it."""
        rgb = uniform_rgb(0)
        rgb[:, 64:] = 255
        edges = EdgeDetector().detect(make_frame(rgb))

        assert edges[36, 60:68].max() > 1.0
        # Far from the boundary the field is flat
        assert edges[36, 20] == 0
        assert edges[36, 110] == 0

    def test_edges_not_clamped(self):
        """Magnitudes are raw and may exceed 1."""
        rgb = uniform_rgb(0)
        rgb[:, 64:] = 255
        edges = EdgeDetector().detect(make_frame(rgb))
        assert edges.max() > 1.0
        assert edges.min() >= 0.0

    def test_frame_border_is_zero(self):
        """Edge strength is always 0 on the outermost pixels."""
        rng = np.random.default_rng(0)
        rgb = rng.integers(0, 256, size=(72, 128, 3), dtype=np.uint8)
        edges = EdgeDetector().detect(make_frame(rgb))
        assert not edges[0, :].any()
        assert not edges[:, 0].any()
        assert not edges[-1, :].any()
        assert not edges[:, -1].any()
