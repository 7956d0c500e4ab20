import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from typing import Any

import cv2

from ..errors import DeviceUnavailable, StreamEnded, UnsupportedMode
from ..ip_types import Frame

log = logging.getLogger(__name__)


class BaseCapture(ABC):
    """Owns a camera handle; reads are serialized by an internal lock.

    Only one ``next_frame`` call may be in flight at a time, so the
    acquisition loop and a concurrent consumer (e.g. a preview thread) can
    share one capture object.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.idx = 0

    @abstractmethod
    def open(self) -> None: ...

    def configure(self) -> None:
        """Apply the capture mode. Sources without a mode accept anything."""

    @abstractmethod
    def _read(self) -> Any:
        """Return the next raw image; raise StreamEnded when none will come."""

    @abstractmethod
    def stop(self) -> None: ...

    def start(self) -> None:
        self.open()
        try:
            self.configure()
        except Exception:
            self.stop()
            raise

    def next_frame(self) -> Frame:
        with self._lock:
            img = self._read()
            self.idx += 1
            ts = time.strftime("%Y-%m-%dT%H:%M:%S")
            return Frame(self.idx, ts, img)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


class USBWebcamCapture(BaseCapture):
    def __init__(self, device: int | str = 0, fps: int = 30, width: int = 1920, height: int = 1080):
        super().__init__()
        self.device, self.fps, self.width, self.height = device, fps, width, height
        self.cap: Any = None

    def _open_handle(self):
        if isinstance(self.device, int):
            return cv2.VideoCapture(self.device, cv2.CAP_V4L2)
        dev_str = str(self.device)
        match = re.match(r"^/dev/video(\d+)$", dev_str)
        if match:
            return cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
        return cv2.VideoCapture(dev_str)

    def open(self) -> None:
        cap = self._open_handle()
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"Failed to open camera: {self.device}")
        self.cap = cap
        self.idx = 0
        log.info("opened camera %s", self.device)

    def configure(self) -> None:
        if self.cap is None:
            raise DeviceUnavailable("Camera not opened")
        self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        got_w = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        got_h = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if (got_w, got_h) != (self.width, self.height):
            raise UnsupportedMode(
                f"camera {self.device} rejected {self.width}x{self.height}, reports {got_w}x{got_h}"
            )
        # drivers round the frame rate, so a mismatch only warns
        got_fps = float(self.cap.get(cv2.CAP_PROP_FPS))
        if got_fps and abs(got_fps - self.fps) >= 1.0:
            log.warning("camera %s runs at %.1f fps (requested %d)", self.device, got_fps, self.fps)
        log.info("camera %s configured %dx%d@%d", self.device, self.width, self.height, self.fps)

    def _read(self):
        if self.cap is None:
            raise StreamEnded(f"camera {self.device} not started")
        ok, img = self.cap.read()
        if not ok or img is None:
            raise StreamEnded(f"camera {self.device} stopped delivering frames")
        return img

    def stop(self) -> None:
        # waits for an in-flight read to finish before releasing the handle
        with self._lock:
            if self.cap is not None:
                self.cap.release()
                self.cap = None
