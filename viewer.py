"""
Particle Vision Local OpenCV Viewer
===================================

Architecture:
    Thread 1 (daemon)  : OpenCVVideoSource decoder -> latest camera frame
    Main thread        : engine tick -> PointCloudCompositor -> cv2.imshow

The mouse acts as the pointer: moving over the window pushes nearby
motion particles away; leaving the window releases it.

Usage:  python viewer.py [--device 0] [--seed 7]
Controls:
    q/ESC  quit
    h      toggle hiding still motion particles
    b      toggle per-layer blend modes
    n      cycle motion-layer blend mode
    1/2/3  toggle background / static / motion layer
    p      save a PNG of the current frame
"""

import argparse
import logging
import time
from typing import Optional, Tuple

import cv2

from particle_vision.config import settings
from particle_vision.engine import ParticleEngine, pointer_to_world
from particle_vision.models import BlendMode, LayerKind
from particle_vision.render import PointCloudCompositor
from particle_vision.video import OpenCVVideoSource


logger = logging.getLogger("particle_vision.viewer")

WINDOW = "Particle Vision"
BLEND_CYCLE = [BlendMode.ADDITIVE, BlendMode.NORMAL, BlendMode.MULTIPLY, BlendMode.SCREEN]
LAYER_KEYS = {
    ord("1"): LayerKind.BACKGROUND,
    ord("2"): LayerKind.STATIC,
    ord("3"): LayerKind.MOTION,
}


# =============================================================================
# Pointer
# =============================================================================

class MousePointer:
    """Tracks the mouse over the window in normalized coordinates."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.normalized: Optional[Tuple[float, float]] = None

    def on_mouse(self, event, x, y, flags, param) -> None:
        if event == cv2.EVENT_MOUSEMOVE:
            if 0 <= x < self.width and 0 <= y < self.height:
                self.normalized = (
                    (x / self.width) * 2.0 - 1.0,
                    -((y / self.height) * 2.0 - 1.0),
                )
            else:
                self.normalized = None

    def world(self, pointer_scale: float) -> Optional[Tuple[float, float]]:
        if self.normalized is None:
            return None
        return pointer_to_world(self.normalized[0], self.normalized[1], pointer_scale)


# =============================================================================
# Overlays
# =============================================================================

def draw_status(image, engine: ParticleEngine, fps: float) -> None:
    """Status text in the top-left corner."""
    result = engine.last_result
    controls = engine.controls
    lines = [f"{fps:5.1f} fps"]
    if result is not None:
        a = result.analytics
        lines.append("video: ready" if result.frame_ready else "video: waiting")
        lines.append(f"moving {a.moving}  static {a.static}  trans {a.transitional}")
        lines.append(f"tick {a.tick_ms:.1f} ms")
    lines.append(
        f"hide_static={controls.hide_static}  blend={controls.enable_blend_mode}"
        f" ({controls.motion.blend_mode.value})"
    )

    for i, text in enumerate(lines):
        cv2.putText(
            image, text, (10, 22 + i * 20),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (220, 220, 220), 1, cv2.LINE_AA,
        )


# =============================================================================
# Key handling
# =============================================================================

def handle_key(key: int, engine: ParticleEngine, compositor: PointCloudCompositor) -> bool:
    """
    Apply a key press to the engine controls.

    Returns:
        False when the viewer should exit
    """
    if key in (ord("q"), 27):
        return False

    controls = engine.controls
    if key == ord("h"):
        engine.controls = controls.merged({"hide_static": not controls.hide_static})
    elif key == ord("b"):
        engine.controls = controls.merged({"enable_blend_mode": not controls.enable_blend_mode})
    elif key == ord("n"):
        current = BLEND_CYCLE.index(controls.motion.blend_mode)
        following = BLEND_CYCLE[(current + 1) % len(BLEND_CYCLE)]
        engine.controls = controls.merged({"motion": {"blend_mode": following.value}})
    elif key in LAYER_KEYS:
        kind = LAYER_KEYS[key]
        visible = controls.layer(kind).visible
        engine.controls = controls.merged({kind.value: {"visible": not visible}})
    elif key == ord("p"):
        path = f"particle_vision_{int(time.time())}.png"
        cv2.imwrite(path, compositor.image)
        logger.info(f"Saved {path}")
    return True


# =============================================================================
# Main
# =============================================================================

def main() -> None:
    parser = argparse.ArgumentParser(description="Local Particle Vision viewer")
    parser.add_argument(
        "--device",
        default=str(settings.video.device),
        help="Camera index or video file path",
    )
    parser.add_argument("--seed", type=int, default=settings.seed, help="Particle seed")
    parser.add_argument("--width", type=int, default=settings.render.width)
    parser.add_argument("--height", type=int, default=settings.render.height)
    args = parser.parse_args()

    device = int(args.device) if args.device.isdigit() else args.device
    run_settings = settings.model_copy(update={"seed": args.seed})

    compositor = PointCloudCompositor(
        width=args.width,
        height=args.height,
        background_color=settings.render.background_color,
        fov_degrees=settings.render.fov_degrees,
        camera_z=settings.render.camera_z,
    )
    engine = ParticleEngine.from_settings(run_settings, sink=compositor)

    source = OpenCVVideoSource(
        device=device,
        requested_width=settings.video.requested_width,
        requested_height=settings.video.requested_height,
    )
    if not source.open():
        logger.warning("No video; the motion layer will idle")
    engine.set_source(source)

    pointer = MousePointer(args.width, args.height)
    cv2.namedWindow(WINDOW, cv2.WINDOW_AUTOSIZE)
    cv2.setMouseCallback(WINDOW, pointer.on_mouse)

    period = 1.0 / settings.loop.target_fps
    started = time.monotonic()
    fps = 0.0
    last = started

    try:
        while True:
            now = time.monotonic()
            engine.tick(
                pointer=pointer.world(settings.interaction.pointer_scale),
                elapsed=now - started,
            )

            dt = now - last
            last = now
            if dt > 0:
                fps = fps * 0.9 + (1.0 / dt) * 0.1

            image = compositor.image
            draw_status(image, engine, fps)
            cv2.imshow(WINDOW, image)

            wait_ms = max(1, int((period - (time.monotonic() - now)) * 1000))
            key = cv2.waitKey(wait_ms) & 0xFF
            if key != 0xFF and not handle_key(key, engine, compositor):
                break
    except KeyboardInterrupt:
        pass
    finally:
        source.close()
        cv2.destroyAllWindows()
        logger.info(f"Viewer closed after {engine.tick_count} ticks")


if __name__ == "__main__":
    main()
