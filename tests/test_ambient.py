"""
Ambient Layer Tests
===================

Tests for the time-driven background and static layers.
"""

import numpy as np
import pytest

from particle_vision.models.controls import SceneControls
from particle_vision.models.layer import LayerKind
from particle_vision.particles import (
    ClassificationThresholds,
    TickContext,
    create_background_layer,
    create_static_layer,
)


def at(elapsed):
    return TickContext(
        elapsed=elapsed,
        controls=SceneControls(),
        thresholds=ClassificationThresholds(),
    )


class TestBackgroundLayer:
    """Tests for the background drift layer."""

    def test_construction(self):
        """Background sits around z = -8 with 0.5 jitter."""
        layer = create_background_layer(count=900, seed=0)
        base = layer.base_positions3

        assert layer.kind == LayerKind.BACKGROUND
        assert layer.size == 0.015
        assert layer.opacity == 0.4
        assert np.all(np.abs(base[:, 2] + 8.0) <= 0.25 + 1e-6)
        assert np.all(np.abs(base[:, 0]) <= 7.5 + 0.25 + 1e-5)

    def test_wave_formula(self):
        """y = grid_y + sin(t * 0.5 + i * 0.01) * 0.2."""
        layer = create_background_layer(count=100, seed=0)
        layer.update(at(2.0))

        grid_size = 10.0
        rows = np.floor(np.arange(100) / grid_size)
        grid_y = (rows / grid_size - 0.5) * 12.0
        expected = grid_y + np.sin(2.0 * 0.5 + np.arange(100) * 0.01) * 0.2
        np.testing.assert_allclose(layer.positions3[:, 1], expected, atol=1e-5)

    def test_x_and_z_untouched(self):
        """Only y moves."""
        layer = create_background_layer(count=100, seed=0)
        layer.update(at(5.0))
        np.testing.assert_array_equal(layer.positions3[:, 0], layer.base_positions3[:, 0])
        np.testing.assert_array_equal(layer.positions3[:, 2], layer.base_positions3[:, 2])

    def test_pulse_colors(self):
        """rgb = (p, 0.8 p, 1.2 p) with p = sin(t + i * 0.02) * 0.2 + 0.3."""
        layer = create_background_layer(count=50, seed=0)
        layer.update(at(1.5))

        pulse = np.sin(1.5 + np.arange(50) * 0.02) * 0.2 + 0.3
        np.testing.assert_allclose(layer.colors3[:, 0], pulse, rtol=1e-6)
        np.testing.assert_allclose(layer.colors3[:, 1], pulse * 0.8, rtol=1e-6)
        np.testing.assert_allclose(layer.colors3[:, 2], pulse * 1.2, rtol=1e-6)

    def test_seeded_jitter(self):
        """Same seed, same base positions."""
        first = create_background_layer(count=200, seed=9)
        second = create_background_layer(count=200, seed=9)
        np.testing.assert_array_equal(first.base_positions, second.base_positions)


class TestStaticLayer:
    """Tests for the static pulse layer."""

    def test_construction(self):
        """Static layer sits around z = -2 with 0.3 jitter."""
        layer = create_static_layer(count=400, seed=0)
        assert layer.kind == LayerKind.STATIC
        assert layer.size == 0.02
        assert layer.opacity == 0.6
        assert np.all(np.abs(layer.base_positions3[:, 2] + 2.0) <= 0.15 + 1e-6)

    def test_gentle_drift(self):
        """Particles circle their base at the drift radius."""
        layer = create_static_layer(count=400, seed=0, drift=0.05)
        for t in (0.0, 1.0, 7.5):
            layer.update(at(t))
            offset = layer.positions3[:, :2] - layer.base_positions3[:, :2]
            np.testing.assert_allclose(np.hypot(offset[:, 0], offset[:, 1]), 0.05, atol=1e-5)

    def test_zero_drift_stays_put(self):
        """drift=0 leaves positions at base."""
        layer = create_static_layer(count=100, seed=0, drift=0.0)
        layer.update(at(3.0))
        np.testing.assert_array_equal(layer.positions, layer.base_positions)

    def test_pulse_range(self):
        """Pulse stays within 0.7..0.9 and blue leads red/green."""
        layer = create_static_layer(count=500, seed=0)
        layer.update(at(4.2))
        colors = layer.colors3

        assert colors[:, 2].min() >= 0.7 - 1e-6
        assert colors[:, 2].max() <= 0.9 + 1e-6
        np.testing.assert_allclose(colors[:, 0], colors[:, 2] * 0.9, rtol=1e-6)

    def test_negative_drift_rejected(self):
        """Drift amplitude must be non-negative."""
        with pytest.raises(ValueError):
            create_static_layer(count=10, drift=-0.1)

    @pytest.mark.parametrize("factory", [create_static_layer, create_background_layer])
    def test_invalid_count(self, factory):
        """Count must be positive."""
        with pytest.raises(ValueError):
            factory(count=0)
