"""
Snapshot Store
==============

Render sink that keeps a private copy of the latest layer snapshots.

The engine hands out its live arrays, which the next tick overwrites.
Consumers that read asynchronously (the /ws/layers stream) go through
this store instead: submit() copies the buffers under a lock, payload()
serializes the latest copy.

Wire Format (per layer):
    {
        "kind": "motion",
        "count": 45000,
        "size": 0.025,
        "blending": "additive",
        "opacity": 0.9,
        "visible": true,
        "scale": 1.0,
        "tint": [r, g, b],
        "positions": "<base64 little-endian float32>",
        "colors": "<base64 little-endian float32>"
    }
"""

import base64
import logging
import threading
import time
from dataclasses import replace
from typing import Optional, Sequence, Tuple

import numpy as np

from particle_vision.models.layer import LayerSnapshot


logger = logging.getLogger(__name__)


def encode_buffer(array: np.ndarray) -> str:
    """Base64 of a float32 array in little-endian byte order."""
    return base64.b64encode(
        np.ascontiguousarray(array, dtype="<f4").tobytes()
    ).decode("ascii")


def decode_buffer(payload: str) -> np.ndarray:
    """Inverse of encode_buffer()."""
    return np.frombuffer(base64.b64decode(payload), dtype="<f4")


class SnapshotStore:
    """
    Thread-safe holder of the most recent snapshots.

    Attributes:
        sequence: Number of submissions so far
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: Tuple[LayerSnapshot, ...] = ()
        self._sequence: int = 0
        self._updated_at: Optional[float] = None

    def submit(self, snapshots: Sequence[LayerSnapshot]) -> None:
        copies = tuple(
            replace(
                snapshot,
                positions=snapshot.positions.copy(),
                colors=snapshot.colors.copy(),
            )
            for snapshot in snapshots
        )
        with self._lock:
            self._snapshots = copies
            self._sequence += 1
            self._updated_at = time.time()

    @property
    def sequence(self) -> int:
        with self._lock:
            return self._sequence

    def latest(self) -> Tuple[int, Tuple[LayerSnapshot, ...]]:
        """(sequence, snapshots) of the latest submission."""
        with self._lock:
            return self._sequence, self._snapshots

    def payload(self) -> Optional[dict]:
        """
        JSON-ready payload of the latest snapshots.

        Returns:
            Payload dict, or None before the first submission
        """
        with self._lock:
            sequence = self._sequence
            snapshots = self._snapshots
            updated_at = self._updated_at

        if sequence == 0:
            return None

        return {
            "sequence": sequence,
            "timestamp": updated_at,
            "layers": [
                {
                    "kind": snapshot.kind.value,
                    "count": snapshot.count,
                    "size": snapshot.size,
                    "blending": snapshot.blending.value,
                    "opacity": snapshot.opacity,
                    "visible": snapshot.visible,
                    "scale": snapshot.scale,
                    "tint": list(snapshot.tint),
                    "positions": encode_buffer(snapshot.positions),
                    "colors": encode_buffer(snapshot.colors),
                }
                for snapshot in snapshots
            ],
        }
