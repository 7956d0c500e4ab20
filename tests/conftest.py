import cv2
import numpy as np
import pytest

from aruco_acquire.errors import StreamEnded
from aruco_acquire.ip_types import DetectionResult, MarkerCandidate
from aruco_acquire.strategies.capture_usb import BaseCapture
from aruco_acquire.strategies.capture_synthetic import render_marker
from aruco_acquire.strategies.detect_aruco import get_dict


def _marker_scene(markers, width=640, height=480, dict_name="4x4_100"):
    """Render markers [(marker_id, (x, y), side_px), ...] on a white BGR canvas."""
    canvas = np.full((height, width), 255, dtype=np.uint8)
    dictionary = get_dict(dict_name)
    for marker_id, (x, y), side in markers:
        canvas[y:y + side, x:x + side] = render_marker(dictionary, marker_id, side)
    return cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)


class ScriptedCapture(BaseCapture):
    """Yields blank frames; raises StreamEnded on read number ``fail_at``."""

    def __init__(self, fail_at=None, shape=(48, 64, 3)):
        super().__init__()
        self.fail_at = fail_at
        self.shape = shape
        self.reads = 0
        self.opened = False

    def open(self):
        self.opened = True

    def _read(self):
        self.reads += 1
        if self.fail_at is not None and self.reads >= self.fail_at:
            raise StreamEnded(f"scripted failure on read {self.reads}")
        return np.zeros(self.shape, dtype=np.uint8)

    def stop(self):
        self.opened = False


def _candidate_corners(call_no, i):
    base = 100.0 * call_no + 10.0 * i
    return np.array(
        [[base, base], [base + 5.5, base], [base + 5.5, base + 5.25], [base, base + 5.25]],
        dtype=np.float32,
    )


class ScriptedDetector:
    """Returns ``counts[n]`` candidates on the n-th call and records every call."""

    def __init__(self, counts, on_call=None):
        self.counts = list(counts)
        self.on_call = on_call
        self.calls = []
        self.results = []

    def detect(self, f, dict_name, parameters):
        self.calls.append((f, dict_name, parameters))
        call_no = len(self.calls)
        n = self.counts[call_no - 1] if call_no <= len(self.counts) else 0
        result = DetectionResult(
            [MarkerCandidate(call_no * 10 + i, _candidate_corners(call_no, i)) for i in range(n)]
        )
        self.results.append(result)
        if self.on_call is not None:
            self.on_call(call_no)
        return result


@pytest.fixture
def marker_scene():
    return _marker_scene


@pytest.fixture
def scripted_capture():
    return ScriptedCapture


@pytest.fixture
def scripted_detector():
    return ScriptedDetector
