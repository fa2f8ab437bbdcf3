"""
Pointer Interaction
===================

Pointer-proximity repulsion applied after the classification update.

For every particle within `radius` of the pointer (XY distance):

    force = ((radius - distance) / radius)² * strength
    x += dx * force,  y += dy * force,  z += 2 * force

where (dx, dy) is the particle's offset from the pointer, so particles
are pushed away from it and toward the viewer. Particles at or beyond
`radius` are untouched. The displacement accumulates into the same
position array the layer update just wrote.
"""

import logging
from typing import Optional, Tuple

import numpy as np


logger = logging.getLogger(__name__)


class InteractionField:
    """
    Radial repulsion field around a pointer.

    Attributes:
        radius: Influence radius in world units
        strength: Force at distance 0
        z_factor: Forward Z displacement per unit force
    """

    def __init__(
        self,
        radius: float = 2.0,
        strength: float = 0.05,
        z_factor: float = 2.0,
    ) -> None:
        """
        Initialize interaction field.

        Raises:
            ValueError: If radius is not positive or strength is negative
        """
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")
        if strength < 0:
            raise ValueError(f"strength must be >= 0, got {strength}")

        self.radius = radius
        self.strength = strength
        self.z_factor = z_factor

    def falloff(
        self,
        distance: float,
        radius: Optional[float] = None,
        strength: Optional[float] = None,
    ) -> float:
        """
        Force at a given distance (0 at or beyond the radius).

        Equals `strength` at distance 0.
        """
        radius = self.radius if radius is None else radius
        strength = self.strength if strength is None else strength
        if distance >= radius:
            return 0.0
        return ((radius - distance) / radius) ** 2 * strength

    def apply(
        self,
        positions: np.ndarray,
        pointer: Optional[Tuple[float, float]],
        radius: Optional[float] = None,
        strength: Optional[float] = None,
    ) -> int:
        """
        Push particles away from the pointer, in place.

        Args:
            positions: Flat (3 * count) or (count, 3) position array
            pointer: World-space (x, y), or None for no pointer
            radius: Override for the influence radius
            strength: Override for the force at distance 0

        Returns:
            Number of particles displaced
        """
        if pointer is None:
            return 0

        radius = self.radius if radius is None else radius
        strength = self.strength if strength is None else strength

        points = positions.reshape(-1, 3)
        dx = points[:, 0].astype(np.float64) - pointer[0]
        dy = points[:, 1].astype(np.float64) - pointer[1]
        distance = np.sqrt(dx * dx + dy * dy)

        inside = distance < radius
        affected = int(np.count_nonzero(inside))
        if not affected:
            return 0

        force = ((radius - distance[inside]) / radius) ** 2 * strength
        points[inside, 0] += dx[inside] * force
        points[inside, 1] += dy[inside] * force
        points[inside, 2] += force * self.z_factor

        return affected
