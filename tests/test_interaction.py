"""
Interaction Field Tests
=======================

Tests for pointer-proximity repulsion.
"""

import numpy as np
import pytest

from particle_vision.particles import InteractionField


def points(*xyz):
    return np.array(xyz, dtype=np.float32).reshape(-1)


class TestFalloff:
    """Tests for InteractionField.falloff."""

    def test_maximum_at_zero(self):
        """Force at distance 0 equals strength."""
        field = InteractionField(radius=2.0, strength=0.05)
        assert field.falloff(0.0) == pytest.approx(0.05)

    def test_quadratic(self):
        """Force at half the radius is a quarter of the maximum."""
        field = InteractionField(radius=2.0, strength=0.05)
        assert field.falloff(1.0) == pytest.approx(0.05 * 0.25)

    def test_zero_at_and_beyond_radius(self):
        """No force at or beyond the radius."""
        field = InteractionField(radius=2.0, strength=0.05)
        assert field.falloff(2.0) == 0.0
        assert field.falloff(3.5) == 0.0

    def test_overrides(self):
        """Radius and strength can be overridden per call."""
        field = InteractionField()
        assert field.falloff(0.0, radius=1.0, strength=0.2) == pytest.approx(0.2)


class TestApply:
    """Tests for InteractionField.apply."""

    def test_no_pointer(self):
        """A missing pointer changes nothing."""
        positions = points((0.5, 0.5, 3.0))
        before = positions.copy()
        assert InteractionField().apply(positions, None) == 0
        np.testing.assert_array_equal(positions, before)

    def test_outside_radius_untouched(self):
        """Particles beyond the radius are not displaced."""
        positions = points((3.0, 0.0, 3.0), (0.0, -2.5, 1.0))
        before = positions.copy()
        affected = InteractionField(radius=2.0).apply(positions, (0.0, 0.0))

        assert affected == 0
        np.testing.assert_array_equal(positions, before)

    def test_exactly_at_radius_untouched(self):
        """The radius itself is exclusive."""
        positions = points((2.0, 0.0, 3.0))
        assert InteractionField(radius=2.0).apply(positions, (0.0, 0.0)) == 0

    def test_distance_zero(self):
        """At the pointer: no XY push, Z moves forward by 2 * strength."""
        positions = points((1.0, 1.0, 3.0))
        affected = InteractionField(radius=2.0, strength=0.05).apply(positions, (1.0, 1.0))

        assert affected == 1
        np.testing.assert_allclose(positions, [1.0, 1.0, 3.1], atol=1e-6)

    def test_push_away_from_pointer(self):
        """Displacement is along the offset from the pointer, scaled by force."""
        positions = points((1.0, 0.0, 0.0), (-0.5, 0.0, 0.0))
        field = InteractionField(radius=2.0, strength=0.05)
        field.apply(positions, (0.0, 0.0))
        moved = positions.reshape(-1, 3)

        force = ((2.0 - 1.0) / 2.0) ** 2 * 0.05
        assert moved[0, 0] == pytest.approx(1.0 + 1.0 * force, abs=1e-6)
        assert moved[0, 2] == pytest.approx(2 * force, abs=1e-6)
        assert moved[1, 0] < -0.5

    def test_accepts_2d_positions(self):
        """(count, 3) arrays are updated in place too."""
        positions = np.zeros((4, 3), dtype=np.float32)
        affected = InteractionField().apply(positions, (0.0, 0.0))
        assert affected == 4
        np.testing.assert_allclose(positions[:, 2], 0.1, atol=1e-6)


class TestValidation:
    """Tests for constructor validation."""

    def test_non_positive_radius(self):
        """Radius must be positive."""
        with pytest.raises(ValueError):
            InteractionField(radius=0.0)

    def test_negative_strength(self):
        """Strength must be non-negative."""
        with pytest.raises(ValueError):
            InteractionField(strength=-0.01)
