import time
from typing import Optional

import cv2
import numpy as np

from ..errors import StreamEnded
from .capture_usb import BaseCapture
from .detect_aruco import get_dict


def render_marker(dictionary, marker_id: int, side_px: int) -> np.ndarray:
    """Draw one marker as a (side_px, side_px) uint8 image."""
    if hasattr(cv2.aruco, "generateImageMarker"):  # OpenCV >= 4.7
        return cv2.aruco.generateImageMarker(dictionary, marker_id, side_px)
    return cv2.aruco.drawMarker(dictionary, marker_id, side_px)


class SyntheticCapture(BaseCapture):
    """Camera stand-in that shows one marker on a white background.

    Used for dry runs. ``max_frames`` ends the stream after that many reads.
    """

    def __init__(
        self,
        fps: int = 30,
        width: int = 640,
        height: int = 480,
        marker_id: int = 0,
        marker_px: int = 200,
        origin: tuple[int, int] = (40, 40),
        dict_name: str = "4x4_100",
        max_frames: Optional[int] = None,
    ):
        super().__init__()
        x, y = origin
        if x < 0 or y < 0 or x + marker_px > width or y + marker_px > height:
            raise ValueError(f"marker at {origin} size {marker_px} does not fit {width}x{height}")
        self.fps = fps
        self.width = width
        self.height = height
        self.marker_id = marker_id
        self.marker_px = marker_px
        self.origin = origin
        self.dict_name = dict_name
        self.max_frames = max_frames
        self._canvas: Optional[np.ndarray] = None
        self._last = 0.0

    def open(self) -> None:
        canvas = np.full((self.height, self.width), 255, dtype=np.uint8)
        x, y = self.origin
        marker = render_marker(get_dict(self.dict_name), self.marker_id, self.marker_px)
        canvas[y:y + self.marker_px, x:x + self.marker_px] = marker
        self._canvas = cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)
        self.idx = 0
        self._last = time.time()

    def _read(self) -> np.ndarray:
        if self._canvas is None:
            raise StreamEnded("synthetic source not started")
        if self.max_frames is not None and self.idx >= self.max_frames:
            raise StreamEnded(f"synthetic source exhausted after {self.max_frames} frames")
        now = time.time()
        if self.fps > 0:
            wait = max(0.0, (1.0 / self.fps) - (now - self._last))
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        return self._canvas.copy()

    def stop(self) -> None:
        with self._lock:
            self._canvas = None
