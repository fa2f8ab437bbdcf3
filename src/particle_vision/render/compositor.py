"""
Point Cloud Compositor
======================

Reference render sink that rasterizes layer snapshots into an image.

Rendering Model:
    - Pinhole camera on the +Z axis looking at the origin
    - Each particle splats one pixel (no size attenuation)
    - Particle color = vertex color * layer tint, clipped to [0, 1]
    - Layers are composited back-to-front in submission order
    - Within a layer, farther particles are drawn first

Blend Modes (per layer, weighted by layer opacity a):
    normal    dst = dst * (1 - a) + src * a
    additive  dst = min(1, dst + sum(src) * a)
    multiply  dst = dst * (1 - a) + dst * src * a
    screen    dst = dst * (1 - a) + (1 - (1 - dst) * (1 - src)) * a

This is a debugging and preview surface. It does not try to match a GPU
point renderer pixel for pixel.
"""

import logging
import math
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from particle_vision.models.color import parse_hex_color
from particle_vision.models.layer import BlendMode, LayerSnapshot


logger = logging.getLogger(__name__)


# Points closer than this to the camera plane are culled
NEAR_PLANE = 0.1


class PointCloudCompositor:
    """
    RenderSink that projects and blends layer snapshots.

    Attributes:
        width: Output width in pixels
        height: Output height in pixels
        background: Background RGB in [0, 1]
        frames_rendered: Number of submit() calls rendered

    Example:
        compositor = PointCloudCompositor(width=640, height=360)
        engine.sink = compositor
        engine.tick()
        cv2.imshow("particles", compositor.image)
    """

    def __init__(
        self,
        width: int = 1280,
        height: int = 720,
        background_color: str = "#0A0E1A",
        fov_degrees: float = 60.0,
        camera_z: float = 8.0,
    ) -> None:
        """
        Initialize compositor.

        Raises:
            ValueError: If dimensions, FOV or camera distance are invalid
        """
        if width < 1 or height < 1:
            raise ValueError(f"Output size must be positive, got {width}x{height}")
        if not 0 < fov_degrees < 180:
            raise ValueError(f"fov_degrees must be in (0, 180), got {fov_degrees}")
        if camera_z <= 0:
            raise ValueError(f"camera_z must be > 0, got {camera_z}")

        self.width = width
        self.height = height
        self.background = np.asarray(parse_hex_color(background_color), dtype=np.float32)
        self.camera_z = camera_z
        # Focal length in pixels for the vertical FOV
        self.focal = (height / 2.0) / math.tan(math.radians(fov_degrees) / 2.0)

        self._canvas = np.empty((height, width, 3), dtype=np.float32)
        self._canvas[:] = self.background
        self.frames_rendered: int = 0

        logger.info(
            f"PointCloudCompositor initialized: {width}x{height}, "
            f"fov={fov_degrees}, camera_z={camera_z}"
        )

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def project(
        self,
        points: np.ndarray,
        scale: float = 1.0,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Project world points to pixel coordinates.

        Args:
            points: (n, 3) world positions
            scale: Uniform layer scale about the origin

        Returns:
            Tuple of (px, py, depth, keep) where keep masks points in
            front of the camera and inside the image
        """
        world = points.astype(np.float64) * scale
        depth = self.camera_z - world[:, 2]
        in_front = depth > NEAR_PLANE
        safe_depth = np.where(in_front, depth, 1.0)

        px = np.floor(self.width / 2.0 + world[:, 0] * self.focal / safe_depth).astype(np.int64)
        py = np.floor(self.height / 2.0 - world[:, 1] * self.focal / safe_depth).astype(np.int64)

        keep = (
            in_front
            & (px >= 0) & (px < self.width)
            & (py >= 0) & (py < self.height)
        )
        return px, py, depth, keep

    # -------------------------------------------------------------------------
    # RenderSink
    # -------------------------------------------------------------------------

    def submit(self, snapshots: Sequence[LayerSnapshot]) -> None:
        """Render one tick of snapshots, back-to-front."""
        canvas = self._canvas
        canvas[:] = self.background

        for snapshot in snapshots:
            if not snapshot.visible or snapshot.opacity <= 0:
                continue
            self._draw_layer(canvas, snapshot)

        self.frames_rendered += 1

    def _draw_layer(self, canvas: np.ndarray, snapshot: LayerSnapshot) -> None:
        points = snapshot.positions.reshape(-1, 3)
        colors = snapshot.colors.reshape(-1, 3)

        px, py, depth, keep = self.project(points, snapshot.scale)
        if not np.any(keep):
            return

        px, py, depth = px[keep], py[keep], depth[keep]
        src = np.clip(
            colors[keep].astype(np.float32) * np.asarray(snapshot.tint, dtype=np.float32),
            0.0,
            1.0,
        )
        alpha = float(snapshot.opacity)

        if snapshot.blending == BlendMode.ADDITIVE:
            accum = np.zeros_like(canvas)
            np.add.at(accum, (py, px), src)
            np.minimum(canvas + accum * alpha, 1.0, out=canvas)
            return

        # Far to near so nearer points win on shared pixels
        order = np.argsort(-depth, kind="stable")
        py, px, src = py[order], px[order], src[order]

        layer = np.zeros_like(canvas)
        covered = np.zeros(canvas.shape[:2], dtype=bool)
        layer[py, px] = src
        covered[py, px] = True

        dst = canvas[covered]
        top = layer[covered]
        if snapshot.blending == BlendMode.MULTIPLY:
            blended = dst * top
        elif snapshot.blending == BlendMode.SCREEN:
            blended = 1.0 - (1.0 - dst) * (1.0 - top)
        else:
            blended = top
        canvas[covered] = dst * (1.0 - alpha) + blended * alpha

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    @property
    def rgb(self) -> np.ndarray:
        """Current frame as float32 RGB in [0, 1] (copy)."""
        return self._canvas.copy()

    @property
    def image(self) -> np.ndarray:
        """Current frame as uint8 BGR, ready for cv2.imshow / imwrite."""
        rgb8 = np.clip(self._canvas * 255.0 + 0.5, 0, 255).astype(np.uint8)
        return cv2.cvtColor(rgb8, cv2.COLOR_RGB2BGR)

    def encode_png(self) -> Optional[bytes]:
        """PNG bytes of the current frame, or None if encoding fails."""
        ok, encoded = cv2.imencode(".png", self.image)
        if not ok:
            logger.warning("PNG encoding failed")
            return None
        return encoded.tobytes()
