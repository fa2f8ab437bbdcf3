"""
Particle Engine
===============

Synchronous per-tick pipeline driver.

One tick:
    1. FrameSampler samples the active video source (or reports NOT_READY)
    2. EdgeDetector and MotionEstimator consume the same sampled frame
    3. Every visible layer advances through its updater
    4. InteractionField pushes motion-layer particles away from the pointer
    5. Layer snapshots go to the render sink, back-to-front

Key Design Decisions:
    - The whole tick runs to completion; there is no suspension point
      inside it, so the render sink only ever sees finished arrays
    - NOT_READY is routine: analysis is skipped and the motion layer idles
    - Controls are re-read at the start of every tick
    - The MotionEstimator's buffers live exactly as long as one source;
      set_source() discards them
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Sequence, Tuple

from particle_vision.models.controls import SceneControls
from particle_vision.models.frame import NOT_READY
from particle_vision.models.layer import LayerKind, LayerSnapshot
from particle_vision.observability.analytics import AnalyticsComputer, TickAnalytics
from particle_vision.particles.ambient import create_background_layer, create_static_layer
from particle_vision.particles.base import (
    ClassificationThresholds,
    ParticleLayer,
    TickContext,
)
from particle_vision.particles.interaction import InteractionField
from particle_vision.particles.motion_layer import create_motion_layer
from particle_vision.video.sampler import FrameSampler
from particle_vision.video.source import VideoSource
from particle_vision.vision.edges import EdgeDetector
from particle_vision.vision.motion import MotionEstimator


logger = logging.getLogger(__name__)


# Back-to-front render order
LAYER_ORDER = (LayerKind.BACKGROUND, LayerKind.STATIC, LayerKind.MOTION)


class RenderSink(Protocol):
    """
    Protocol for render sinks.

    A sink receives the layer snapshots of every tick, back-to-front.
    It must finish reading the arrays before the next tick and must
    never write to them.
    """

    def submit(self, snapshots: Sequence[LayerSnapshot]) -> None:
        ...


@dataclass(frozen=True, slots=True)
class TickResult:
    """
    Outcome of one tick.

    Attributes:
        frame_ready: Whether a video frame was sampled
        snapshots: Layer snapshots, back-to-front
        analytics: Per-tick analytics
    """

    frame_ready: bool
    snapshots: Tuple[LayerSnapshot, ...]
    analytics: TickAnalytics


def pointer_to_world(
    x: float,
    y: float,
    pointer_scale: float = 5.0,
) -> Tuple[float, float]:
    """
    Map a normalized pointer position to world space.

    Args:
        x: Horizontal position in [-1, 1], +1 = right
        y: Vertical position in [-1, 1], +1 = up
        pointer_scale: World units per normalized unit

    Returns:
        World-space (x, y)
    """
    return (x * pointer_scale, y * pointer_scale)


class ParticleEngine:
    """
    Owns the analysis stages and particle layers and runs ticks.

    Attributes:
        controls: Configuration surface, re-read every tick
        thresholds: Classification thresholds
        sink: Optional render sink receiving snapshots
        tick_count: Ticks run so far
    """

    def __init__(
        self,
        layers: Sequence[ParticleLayer],
        controls: Optional[SceneControls] = None,
        thresholds: Optional[ClassificationThresholds] = None,
        sampler: Optional[FrameSampler] = None,
        edge_detector: Optional[EdgeDetector] = None,
        motion_estimator: Optional[MotionEstimator] = None,
        interaction: Optional[InteractionField] = None,
        sink: Optional[RenderSink] = None,
        analytics: Optional[AnalyticsComputer] = None,
    ) -> None:
        """
        Initialize particle engine.

        Args:
            layers: At most one layer per LayerKind
            controls: Initial controls (defaults to SceneControls())
            thresholds: Classification thresholds
            sampler: Frame sampler
            edge_detector: Edge detector
            motion_estimator: Motion estimator
            interaction: Pointer interaction field
            sink: Render sink
            analytics: Analytics computer

        Raises:
            ValueError: If two layers share a kind
        """
        self._layers: Dict[LayerKind, ParticleLayer] = {}
        for layer in layers:
            if layer.kind in self._layers:
                raise ValueError(f"Duplicate layer kind: {layer.kind.value}")
            self._layers[layer.kind] = layer

        self.controls = controls if controls is not None else SceneControls()
        self.thresholds = thresholds if thresholds is not None else ClassificationThresholds()
        self.sink = sink

        self._sampler = sampler if sampler is not None else FrameSampler()
        self._edge_detector = edge_detector if edge_detector is not None else EdgeDetector()
        self._motion_estimator = (
            motion_estimator if motion_estimator is not None else MotionEstimator()
        )
        self._interaction = interaction if interaction is not None else InteractionField()
        self._analytics = analytics if analytics is not None else AnalyticsComputer()

        self._source: Optional[VideoSource] = None
        self._tick_count: int = 0
        self._last_result: Optional[TickResult] = None

        logger.info(
            f"ParticleEngine initialized: layers="
            f"{[kind.value for kind in LAYER_ORDER if kind in self._layers]}, "
            f"thresholds=({self.thresholds.motion_threshold}, "
            f"{self.thresholds.static_threshold})"
        )

    @classmethod
    def from_settings(cls, settings=None, sink: Optional[RenderSink] = None) -> "ParticleEngine":
        """
        Build an engine from configuration.

        Args:
            settings: Settings instance (defaults to the global settings)
            sink: Optional render sink
        """
        if settings is None:
            from particle_vision.config import settings as global_settings
            settings = global_settings

        seed = settings.seed
        layers_cfg = settings.layers
        layers = []

        if layers_cfg.background.enabled:
            layers.append(create_background_layer(
                count=layers_cfg.background.count,
                seed=None if seed is None else seed + 2,
                size=layers_cfg.background.size,
                opacity=layers_cfg.background.opacity,
            ))
        if layers_cfg.static.enabled:
            layers.append(create_static_layer(
                count=layers_cfg.static.count,
                seed=None if seed is None else seed + 1,
                drift=layers_cfg.static_drift,
                size=layers_cfg.static.size,
                opacity=layers_cfg.static.opacity,
            ))
        if layers_cfg.motion.enabled:
            layers.append(create_motion_layer(
                count=layers_cfg.motion.count,
                aspect_ratio=layers_cfg.motion_aspect_ratio,
                seed=seed,
                size=layers_cfg.motion.size,
                opacity=layers_cfg.motion.opacity,
            ))

        return cls(
            layers=layers,
            controls=settings.initial_controls(),
            thresholds=ClassificationThresholds(
                motion_threshold=settings.motion.motion_threshold,
                static_threshold=settings.motion.static_threshold,
                edge_threshold=settings.motion.edge_threshold,
            ),
            sampler=FrameSampler(sample_width=settings.video.sample_width),
            motion_estimator=MotionEstimator(smoothing=settings.motion.smoothing),
            interaction=InteractionField(
                radius=settings.interaction.radius,
                strength=settings.interaction.strength,
            ),
            sink=sink,
            analytics=AnalyticsComputer(log_every_n_ticks=settings.loop.log_every_n_ticks),
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def source(self) -> Optional[VideoSource]:
        return self._source

    def set_source(self, source: Optional[VideoSource]) -> None:
        """
        Bind a new video source (or None to stop).

        Discards the previous frame and motion map; the next sampled
        frame is treated as a first frame.
        """
        self._source = source
        self._sampler.reset()
        self._motion_estimator.reset()
        logger.info(f"Video source {'bound' if source is not None else 'cleared'}")

    def layer(self, kind: LayerKind) -> Optional[ParticleLayer]:
        return self._layers.get(kind)

    @property
    def layers(self) -> Tuple[ParticleLayer, ...]:
        """Layers, back-to-front."""
        return tuple(self._layers[kind] for kind in LAYER_ORDER if kind in self._layers)

    @property
    def sampler(self) -> FrameSampler:
        return self._sampler

    @property
    def motion_estimator(self) -> MotionEstimator:
        return self._motion_estimator

    @property
    def interaction(self) -> InteractionField:
        return self._interaction

    @property
    def analytics(self) -> AnalyticsComputer:
        return self._analytics

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def last_result(self) -> Optional[TickResult]:
        return self._last_result

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def tick(
        self,
        pointer: Optional[Tuple[float, float]] = None,
        elapsed: float = 0.0,
    ) -> TickResult:
        """
        Run one full tick.

        Args:
            pointer: World-space pointer position, or None
            elapsed: Seconds since start (drives ambient layers)

        Returns:
            TickResult with snapshots and analytics
        """
        started = time.perf_counter()
        self._tick_count += 1
        controls = self.controls

        sampled = self._sampler.sample(self._source)
        if sampled is NOT_READY:
            context = TickContext(
                elapsed=elapsed,
                controls=controls,
                thresholds=self.thresholds,
            )
        else:
            edge_map = self._edge_detector.detect(sampled)
            motion_map = self._motion_estimator.estimate(sampled)
            context = TickContext(
                elapsed=elapsed,
                controls=controls,
                thresholds=self.thresholds,
                frame=sampled,
                motion_map=motion_map,
                edge_map=edge_map,
            )

        for layer in self.layers:
            if controls.layer(layer.kind).visible:
                layer.update(context)

        pointer_affected = 0
        classification = None
        motion_layer = self._layers.get(LayerKind.MOTION)
        if motion_layer is not None and controls.motion.visible:
            pointer_affected = self._interaction.apply(motion_layer.positions, pointer)
            classification = getattr(motion_layer.updater, "last_classification", None)

        snapshots = tuple(layer.snapshot(controls) for layer in self.layers)
        if self.sink is not None:
            self.sink.submit(snapshots)

        tick_ms = (time.perf_counter() - started) * 1000.0
        analytics = self._analytics.compute(
            frame_ready=context.has_video,
            classification=classification if context.has_video else None,
            motion_debug=self._motion_estimator.debug_state,
            edge_map=context.edge_map,
            pointer_affected=pointer_affected,
            tick_ms=tick_ms,
        )

        result = TickResult(
            frame_ready=context.has_video,
            snapshots=snapshots,
            analytics=analytics,
        )
        self._last_result = result

        logger.debug(
            f"Tick {self._tick_count}: ready={result.frame_ready}, "
            f"{tick_ms:.2f}ms"
        )
        return result

    def get_metrics(self) -> dict:
        """Engine metrics for observability."""
        return {
            "tick_count": self._tick_count,
            "source_bound": self._source is not None,
            "sample_generation": self._sampler.generation,
            "not_ready_ticks": self._sampler.not_ready_count,
            "analytics": self._analytics.get_metrics(),
        }
