from __future__ import annotations

import enum
import logging
import threading
from typing import Optional

from .config import DetectionParameters
from .errors import AcquisitionCancelled, NoMarkerFound
from .ip_types import AcquiredCorners
from .strategies.capture_usb import BaseCapture
from .strategies.corners import extract
from .strategies.detect_aruco import ArucoDetect
from .strategies.preprocess import PreprocessStrategy, default_chain


class AcquireState(enum.Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    PREPROCESSING = "preprocessing"
    DETECTING = "detecting"
    RETRY = "retry"
    ACCEPTED = "accepted"
    FAILED = "failed"


class MarkerAcquisition:
    """Capture frames until exactly one marker is visible.

    Every iteration consumes one frame: capture -> preprocess -> detect.
    One candidate ends the loop with its corners; zero or several candidates
    retry on the next frame with no delay. Capture failures (StreamEnded)
    propagate unchanged.

    ``max_attempts`` bounds the number of frames inspected (None means
    unbounded) and ``stop()`` requests cancellation, checked before each
    capture; a read that is already in progress is allowed to finish.
    """

    def __init__(
        self,
        capture: BaseCapture,
        dictionary: str = "4x4_100",
        parameters: Optional[DetectionParameters] = None,
        pre: Optional[PreprocessStrategy] = None,
        det: Optional[ArucoDetect] = None,
        logger: Optional[logging.Logger] = None,
        max_attempts: Optional[int] = None,
    ):
        if max_attempts is not None and max_attempts <= 0:
            raise ValueError("max_attempts must be a positive integer or None")
        self.capture = capture
        self.dictionary = dictionary
        self.parameters = parameters if parameters is not None else DetectionParameters()
        self.pre = pre if pre is not None else default_chain()
        self.det = det if det is not None else ArucoDetect()
        self.logger = logger or logging.getLogger(__name__)
        self.max_attempts = max_attempts
        self.state = AcquireState.IDLE
        self.attempts = 0
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def _enter(self, state: AcquireState) -> None:
        self.state = state
        self.logger.debug("attempt=%d state=%s", self.attempts, state.value)

    def run(self) -> AcquiredCorners:
        self.attempts = 0
        self.logger.info(
            "acquisition started: dict=%s params=%s max_attempts=%s",
            self.dictionary, self.parameters.as_dict(), self.max_attempts,
        )
        try:
            return self._loop()
        except Exception as e:
            failed_in = self.state
            self._enter(AcquireState.FAILED)
            self.logger.warning(
                "acquisition failed in %s after %d attempt(s): %s",
                failed_in.value, self.attempts, e,
            )
            raise

    def _loop(self) -> AcquiredCorners:
        while True:
            if self._stop_event.is_set():
                raise AcquisitionCancelled(self.attempts)
            if self.max_attempts is not None and self.attempts >= self.max_attempts:
                raise NoMarkerFound(self.attempts)

            self._enter(AcquireState.CAPTURING)
            f = self.capture.next_frame()
            self.attempts += 1

            self._enter(AcquireState.PREPROCESSING)
            f = self.pre.apply(f)

            self._enter(AcquireState.DETECTING)
            result = self.det.detect(f, self.dictionary, self.parameters)

            if len(result.candidates) == 1:
                self._enter(AcquireState.ACCEPTED)
                corners = extract(result.candidates[0])
                self.logger.info(
                    "frame=%d accepted marker=%d corners=%s",
                    f.idx, corners.marker_id, corners.points,
                )
                return corners

            self._enter(AcquireState.RETRY)
            self.logger.debug(
                "frame=%d candidates=%d rejected=%d",
                f.idx, len(result.candidates), len(result.rejected),
            )


def acquire_marker_corners(
    capture: BaseCapture,
    dictionary: str = "4x4_100",
    parameters: Optional[DetectionParameters] = None,
    **kwargs,
) -> AcquiredCorners:
    """Block until exactly one marker is visible and return its corners."""
    return MarkerAcquisition(capture, dictionary, parameters, **kwargs).run()
