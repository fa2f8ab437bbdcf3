"""
Observability Module
====================

Analytics for Particle Vision.

This module provides:
    - AnalyticsComputer: Derives per-tick classification statistics
    - TickAnalytics: Snapshot of one tick

DESIGN RULES:
    - Does NOT influence the particle update
    - Reads only what the engine already computed
"""

from particle_vision.observability.analytics import (
    AnalyticsComputer,
    TickAnalytics,
)


__all__ = [
    "AnalyticsComputer",
    "TickAnalytics",
]
