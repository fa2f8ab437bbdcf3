"""
Compositor Tests
================

Tests for the reference PointCloudCompositor and SnapshotStore sinks.
"""

import numpy as np
import pytest

from particle_vision.models.layer import BlendMode, LayerKind, LayerSnapshot
from particle_vision.render import PointCloudCompositor, SnapshotStore, decode_buffer


def snapshot(
    positions,
    colors,
    blending=BlendMode.NORMAL,
    opacity=1.0,
    visible=True,
    scale=1.0,
    tint=(1.0, 1.0, 1.0),
    kind=LayerKind.MOTION,
):
    return LayerSnapshot(
        kind=kind,
        positions=np.asarray(positions, dtype=np.float32).reshape(-1),
        colors=np.asarray(colors, dtype=np.float32).reshape(-1),
        size=0.02,
        blending=blending,
        opacity=opacity,
        visible=visible,
        scale=scale,
        tint=tint,
    )


@pytest.fixture
def compositor():
    return PointCloudCompositor(width=64, height=48, background_color="#000000")


class TestProjection:
    """Tests for PointCloudCompositor.project."""

    def test_origin_projects_to_center(self, compositor):
        """The origin lands in the image center."""
        px, py, depth, keep = compositor.project(np.zeros((1, 3)))
        assert (px[0], py[0]) == (32, 24)
        assert depth[0] == pytest.approx(8.0)
        assert keep[0]

    def test_up_is_up(self, compositor):
        """Positive world Y maps to smaller row indices."""
        px, py, _, _ = compositor.project(np.array([[0.0, 1.0, 0.0]]))
        assert py[0] < 24

    def test_behind_camera_culled(self, compositor):
        """Points at or behind the camera plane are dropped."""
        _, _, _, keep = compositor.project(np.array([[0.0, 0.0, 8.0], [0.0, 0.0, 9.0]]))
        assert not keep.any()

    def test_offscreen_culled(self, compositor):
        """Points outside the frustum are dropped."""
        _, _, _, keep = compositor.project(np.array([[100.0, 0.0, 0.0]]))
        assert not keep[0]

    def test_scale_spreads_points(self, compositor):
        """Layer scale multiplies world positions."""
        point = np.array([[1.0, 0.0, 0.0]])
        px1, _, _, _ = compositor.project(point, scale=1.0)
        px2, _, _, _ = compositor.project(point, scale=2.0)
        assert px2[0] > px1[0]


class TestBlending:
    """Tests for per-layer blending."""

    def test_background_only(self, compositor):
        """With no snapshots the image is the background color."""
        compositor = PointCloudCompositor(width=8, height=8, background_color="#0A0E1A")
        compositor.submit([])
        image = compositor.image
        assert image.shape == (8, 8, 3)
        assert image.dtype == np.uint8
        # BGR order
        assert tuple(image[0, 0]) == (0x1A, 0x0E, 0x0A)

    def test_normal(self, compositor):
        """Normal blending replaces by opacity."""
        compositor.submit([snapshot([0, 0, 0], [1.0, 0.5, 0.0], opacity=0.5)])
        np.testing.assert_allclose(compositor.rgb[24, 32], [0.5, 0.25, 0.0], atol=1e-6)

    def test_tint_multiplies(self, compositor):
        """Vertex colors are multiplied by the layer tint."""
        compositor.submit([snapshot([0, 0, 0], [1.0, 1.0, 1.0], tint=(0.2, 0.4, 0.6))])
        np.testing.assert_allclose(compositor.rgb[24, 32], [0.2, 0.4, 0.6], atol=1e-6)

    def test_additive_accumulates(self, compositor):
        """Additive sums overlapping points and clips at 1."""
        compositor.submit([
            snapshot([[0, 0, 0], [0, 0, 0]], [[0.3, 0.3, 0.3], [0.4, 0.4, 0.9]],
                     blending=BlendMode.ADDITIVE),
        ])
        np.testing.assert_allclose(compositor.rgb[24, 32], [0.7, 0.7, 1.0], atol=1e-6)

    def test_multiply_darkens(self, compositor):
        """Multiply over a lit pixel scales it."""
        compositor.submit([
            snapshot([0, 0, 0], [0.8, 0.8, 0.8], kind=LayerKind.BACKGROUND),
            snapshot([0, 0, 0], [0.5, 0.5, 0.5], blending=BlendMode.MULTIPLY),
        ])
        np.testing.assert_allclose(compositor.rgb[24, 32], 0.4, atol=1e-6)

    def test_screen_lightens(self, compositor):
        """Screen: 1 - (1 - a)(1 - b)."""
        compositor.submit([
            snapshot([0, 0, 0], [0.5, 0.5, 0.5], kind=LayerKind.BACKGROUND),
            snapshot([0, 0, 0], [0.5, 0.5, 0.5], blending=BlendMode.SCREEN),
        ])
        np.testing.assert_allclose(compositor.rgb[24, 32], 0.75, atol=1e-6)

    def test_nearest_point_wins(self, compositor):
        """Within a normal layer the nearer point covers the farther one."""
        compositor.submit([
            snapshot([[0, 0, 1.0], [0, 0, -1.0]], [[1.0, 0, 0], [0, 0, 1.0]]),
        ])
        np.testing.assert_allclose(compositor.rgb[24, 32], [1.0, 0, 0], atol=1e-6)

    def test_hidden_layer_skipped(self, compositor):
        """Invisible layers draw nothing."""
        compositor.submit([snapshot([0, 0, 0], [1, 1, 1], visible=False)])
        assert not compositor.rgb.any()

    def test_canvas_cleared_each_submit(self, compositor):
        """Every submission starts from the background."""
        compositor.submit([snapshot([0, 0, 0], [1, 1, 1])])
        compositor.submit([])
        assert not compositor.rgb.any()
        assert compositor.frames_rendered == 2

    def test_png_encoding(self, compositor):
        """PNG bytes start with the PNG signature."""
        compositor.submit([])
        assert compositor.encode_png().startswith(b"\x89PNG")

    def test_invalid_fov(self):
        """FOV must be inside (0, 180)."""
        with pytest.raises(ValueError):
            PointCloudCompositor(fov_degrees=180)


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_empty_payload(self):
        """No payload before the first submission."""
        assert SnapshotStore().payload() is None

    def test_copies_buffers(self):
        """Stored buffers are independent of the engine's live arrays."""
        store = SnapshotStore()
        live = snapshot([1, 2, 3], [0.1, 0.2, 0.3])
        store.submit([live])
        live.positions[:] = 0

        payload = store.payload()
        assert payload["sequence"] == 1
        layer = payload["layers"][0]
        assert layer["kind"] == "motion"
        assert layer["count"] == 1
        np.testing.assert_array_equal(decode_buffer(layer["positions"]), [1, 2, 3])
        np.testing.assert_allclose(decode_buffer(layer["colors"]), [0.1, 0.2, 0.3])

    def test_sequence_increments(self):
        """Each submission bumps the sequence."""
        store = SnapshotStore()
        store.submit([])
        store.submit([])
        assert store.sequence == 2
