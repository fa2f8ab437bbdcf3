"""
Video Sources
=============

Readable frame sources consumed by the FrameSampler.

A video source is an external capability. The engine only needs three
things from it: whether a frame has been decoded yet, the decoded
dimensions, and a way to copy the current frame, scaled, into a
caller-supplied RGBA buffer.

Implementations:
    - OpenCVVideoSource: Camera device or video file via cv2.VideoCapture,
      decoded on a daemon thread (latest frame wins)
    - ArrayVideoSource: Frames pushed from memory (tests, scripted playback)

Design Rules:
    - Decoding is asynchronous relative to ticks; draw_into never blocks
      waiting for a new frame and stale reads are acceptable
    - Failure to acquire the camera is logged, not raised; the source
      simply never becomes ready
"""

import logging
import threading
import time
from typing import Optional, Protocol, Tuple, Union

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    """
    Protocol for readable video sources.

    All implementations expose readiness, decoded dimensions and a
    scaled copy of the current frame.
    """

    def is_ready(self) -> bool:
        """True once at least one frame has been decoded."""
        ...

    @property
    def dimensions(self) -> Optional[Tuple[int, int]]:
        """Decoded (width, height), or None before the first frame."""
        ...

    def draw_into(self, buffer: np.ndarray) -> None:
        """
        Copy the current frame into buffer, scaled to its size.

        Args:
            buffer: Target RGBA array (H, W, 4), dtype uint8
        """
        ...


def _scale_to_rgba(image: np.ndarray, buffer: np.ndarray, bgr: bool) -> None:
    """Resize a 3- or 4-channel image into an RGBA buffer in place."""
    height, width = buffer.shape[:2]

    if image.shape[:2] != (height, width):
        image = cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)

    channels = image.shape[2] if image.ndim == 3 else 1
    if channels == 4:
        code = cv2.COLOR_BGRA2RGBA if bgr else None
    elif channels == 3:
        code = cv2.COLOR_BGR2RGBA if bgr else cv2.COLOR_RGB2RGBA
    else:
        code = cv2.COLOR_GRAY2RGBA

    if code is None:
        buffer[...] = image
    else:
        buffer[...] = cv2.cvtColor(image, code)


class ArrayVideoSource:
    """
    In-memory video source.

    Frames are pushed as RGB or RGBA uint8 arrays and drawn into the
    sampler buffer exactly like a decoded camera frame. A frame whose
    size already matches the target buffer is copied without resampling.

    Example:
        source = ArrayVideoSource()
        source.push(np.zeros((72, 128, 3), dtype=np.uint8))
        assert source.is_ready()
    """

    def __init__(self, frame: Optional[np.ndarray] = None) -> None:
        self._frame: Optional[np.ndarray] = None
        self._frames_pushed: int = 0
        if frame is not None:
            self.push(frame)

    def push(self, frame: np.ndarray) -> None:
        """
        Replace the current frame.

        Args:
            frame: RGB (H, W, 3) or RGBA (H, W, 4) array, dtype uint8

        Raises:
            ValueError: If the frame has an invalid shape or dtype
        """
        if frame.ndim != 3 or frame.shape[2] not in (3, 4):
            raise ValueError(
                f"Frame must be (H, W, 3) or (H, W, 4). Got shape: {frame.shape}"
            )
        if frame.dtype != np.uint8:
            raise ValueError(f"Frame must be uint8. Got: {frame.dtype}")

        self._frame = np.ascontiguousarray(frame)
        self._frames_pushed += 1

    def clear(self) -> None:
        """Drop the current frame; the source reports not ready."""
        self._frame = None

    @property
    def frames_pushed(self) -> int:
        """Total frames pushed."""
        return self._frames_pushed

    def is_ready(self) -> bool:
        return self._frame is not None

    @property
    def dimensions(self) -> Optional[Tuple[int, int]]:
        if self._frame is None:
            return None
        return (int(self._frame.shape[1]), int(self._frame.shape[0]))

    def draw_into(self, buffer: np.ndarray) -> None:
        if self._frame is None:
            return
        _scale_to_rgba(self._frame, buffer, bgr=False)


class OpenCVVideoSource:
    """
    Camera or video-file source backed by cv2.VideoCapture.

    A daemon thread decodes frames continuously and keeps only the most
    recent one. Ticks read whatever frame is current, so a decoder that
    lags behind the tick rate is read redundantly.

    Attributes:
        device: Camera index or file path/URL
        frames_decoded: Number of frames decoded so far

    Example:
        source = OpenCVVideoSource(device=0)
        if source.open():
            ...
        source.close()
    """

    def __init__(
        self,
        device: Union[int, str] = 0,
        requested_width: Optional[int] = 1280,
        requested_height: Optional[int] = 720,
    ) -> None:
        """
        Initialize the source. Nothing is opened until open().

        Args:
            device: Camera index or video path
            requested_width: Preferred capture width (camera only)
            requested_height: Preferred capture height (camera only)
        """
        self.device = device
        self.requested_width = requested_width
        self.requested_height = requested_height

        self._capture: Optional[cv2.VideoCapture] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._running: bool = False
        self._latest: Optional[np.ndarray] = None
        self._frames_decoded: int = 0

    def open(self) -> bool:
        """
        Acquire the device and start decoding.

        Returns:
            True if the device opened, False if acquisition was denied
            or the device does not exist.
        """
        if self._running:
            return True

        capture = cv2.VideoCapture(self.device)
        if not capture.isOpened():
            logger.warning(
                f"Video acquisition failed for device {self.device!r}; "
                f"source will never become ready"
            )
            capture.release()
            return False

        if isinstance(self.device, int):
            if self.requested_width:
                capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.requested_width)
            if self.requested_height:
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.requested_height)

        self._capture = capture
        self._running = True
        self._thread = threading.Thread(
            target=self._decode_loop,
            name="video-decoder",
            daemon=True,
        )
        self._thread.start()

        logger.info(f"OpenCVVideoSource opened: device={self.device!r}")
        return True

    def close(self) -> None:
        """Stop decoding and release the device."""
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        with self._lock:
            self._latest = None
        logger.info(f"OpenCVVideoSource closed: device={self.device!r}")

    def _decode_loop(self) -> None:
        """Decode frames until closed. Runs on the decoder thread."""
        capture = self._capture
        if capture is None:
            return

        # Files decode faster than real time; pace them at their own FPS
        frame_interval = 0.0
        if not isinstance(self.device, int):
            fps = capture.get(cv2.CAP_PROP_FPS) or 0.0
            frame_interval = 1.0 / fps if fps > 0 else 1.0 / 30.0

        while self._running:
            ok, frame = capture.read()
            if not ok or frame is None:
                if not isinstance(self.device, int):
                    # End of file: loop playback
                    capture.set(cv2.CAP_PROP_POS_FRAMES, 0)
                time.sleep(0.01)
                continue

            with self._lock:
                self._latest = frame
                self._frames_decoded += 1

            if frame_interval:
                time.sleep(frame_interval)

    @property
    def frames_decoded(self) -> int:
        return self._frames_decoded

    def is_ready(self) -> bool:
        with self._lock:
            return self._latest is not None

    @property
    def dimensions(self) -> Optional[Tuple[int, int]]:
        with self._lock:
            if self._latest is None:
                return None
            return (int(self._latest.shape[1]), int(self._latest.shape[0]))

    def draw_into(self, buffer: np.ndarray) -> None:
        with self._lock:
            frame = self._latest
        if frame is None:
            return
        _scale_to_rgba(frame, buffer, bgr=True)
