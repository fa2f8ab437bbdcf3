"""
Edge Detection
==============

Per-pixel edge strength for a sampled frame.

Pipeline (each step a fixed numeric transform):
    1. Luma: gray = (0.299 R + 0.587 G + 0.114 B) / 255
    2. 5x5 Gaussian blur, outer product of [1, 4, 6, 4, 1] / 16
    3. 3x3 Sobel gradients, magnitude = sqrt(Gx² + Gy²)

Boundary Policy:
    The blur is only written for interior pixels; a 2-pixel border of
    the blurred field stays 0. The gradient magnitude excludes a 1-pixel
    border the same way. Border edge strength is therefore always 0.

Output Scale:
    Magnitudes are NOT normalized. Downstream thresholds (edge > 0.1)
    are tuned against this raw scale.
"""

import logging

import cv2
import numpy as np

from particle_vision.models.frame import SampledFrame


logger = logging.getLogger(__name__)


LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# Separable binomial kernel; outer product normalizes by 16 * 16
GAUSSIAN_KERNEL = np.array([1.0, 4.0, 6.0, 4.0, 1.0], dtype=np.float64) / 16.0

BLUR_BORDER = 2
SOBEL_BORDER = 1


def to_luma(pixels: np.ndarray) -> np.ndarray:
    """
    Convert RGBA (or RGB) pixels to normalized luma.

    Args:
        pixels: (H, W, 3|4) uint8 array

    Returns:
        (H, W) float64 array in [0, 1]
    """
    rgb = pixels[..., :3].astype(np.float64)
    return (rgb @ LUMA_WEIGHTS) / 255.0


def gaussian_blur_interior(gray: np.ndarray) -> np.ndarray:
    """
    Apply the 5x5 binomial blur to interior pixels only.

    Args:
        gray: (H, W) float64 field

    Returns:
        Blurred field with a zero 2-pixel border
    """
    blurred = np.zeros_like(gray)
    height, width = gray.shape
    if height <= 2 * BLUR_BORDER or width <= 2 * BLUR_BORDER:
        return blurred

    full = cv2.sepFilter2D(gray, cv2.CV_64F, GAUSSIAN_KERNEL, GAUSSIAN_KERNEL)
    b = BLUR_BORDER
    blurred[b:-b, b:-b] = full[b:-b, b:-b]
    return blurred


def sobel_magnitude_interior(field: np.ndarray) -> np.ndarray:
    """
    Sobel gradient magnitude for interior pixels only.

    Args:
        field: (H, W) float64 field

    Returns:
        Magnitude with a zero 1-pixel border
    """
    magnitude = np.zeros_like(field)
    height, width = field.shape
    if height <= 2 * SOBEL_BORDER or width <= 2 * SOBEL_BORDER:
        return magnitude

    gx = cv2.Sobel(field, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(field, cv2.CV_64F, 0, 1, ksize=3)
    b = SOBEL_BORDER
    magnitude[b:-b, b:-b] = np.sqrt(gx[b:-b, b:-b] ** 2 + gy[b:-b, b:-b] ** 2)
    return magnitude


class EdgeDetector:
    """
    Blur + Sobel edge detector.

    Pure function of one frame; holds no cross-frame state, so a single
    instance can be shared freely.
    """

    def detect(self, frame: SampledFrame) -> np.ndarray:
        """
        Compute the edge map of a sampled frame.

        Args:
            frame: Sampled RGBA frame

        Returns:
            EdgeMap: (H, W) float64 array of non-negative, unbounded
            gradient magnitudes
        """
        gray = to_luma(frame.pixels)
        blurred = gaussian_blur_interior(gray)
        return sobel_magnitude_interior(blurred)
