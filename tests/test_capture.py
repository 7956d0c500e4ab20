import threading
import time
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from aruco_acquire.errors import DeviceUnavailable, StreamEnded, UnsupportedMode
from aruco_acquire.strategies import capture_usb as capture_mod
from aruco_acquire.strategies.capture_usb import BaseCapture, USBWebcamCapture
from aruco_acquire.strategies.capture_synthetic import SyntheticCapture


def _fake_cap(width=640, height=480, fps=30.0, opened=True, read_ok=True):
    cap = MagicMock()
    cap.isOpened.return_value = opened
    props = {
        cv2.CAP_PROP_FRAME_WIDTH: float(width),
        cv2.CAP_PROP_FRAME_HEIGHT: float(height),
        cv2.CAP_PROP_FPS: float(fps),
    }
    cap.get.side_effect = lambda prop: props.get(prop, 0.0)
    img = np.zeros((height, width, 3), dtype=np.uint8) if read_ok else None
    cap.read.return_value = (read_ok, img)
    return cap


@patch("aruco_acquire.strategies.capture_usb.time.strftime", return_value="ts")
@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_usb_capture_reads_frames(mock_cap_class, mock_strftime):
    """USB capture should configure the camera and yield Frame objects."""
    mock_cap = _fake_cap(640, 480, 20)
    mock_cap_class.return_value = mock_cap

    capture = USBWebcamCapture(device=1, fps=20, width=640, height=480)
    capture.start()
    frame = capture.next_frame()
    second = capture.next_frame()
    capture.stop()

    mock_cap_class.assert_called_once_with(1, capture_mod.cv2.CAP_V4L2)
    mock_cap.set.assert_any_call(capture_mod.cv2.CAP_PROP_FRAME_WIDTH, 640)
    mock_cap.set.assert_any_call(capture_mod.cv2.CAP_PROP_FRAME_HEIGHT, 480)
    mock_cap.set.assert_any_call(capture_mod.cv2.CAP_PROP_FPS, 20)
    assert frame.image.shape == (480, 640, 3)
    assert (frame.idx, second.idx) == (1, 2)
    assert frame.ts_iso == "ts"
    mock_cap.release.assert_called_once()


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_usb_capture_maps_dev_video_path(mock_cap_class):
    mock_cap_class.return_value = _fake_cap()
    capture = USBWebcamCapture(device="/dev/video3", width=640, height=480)
    capture.open()
    mock_cap_class.assert_called_once_with(3, capture_mod.cv2.CAP_V4L2)


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_usb_capture_passes_other_sources_through(mock_cap_class):
    mock_cap_class.return_value = _fake_cap()
    capture = USBWebcamCapture(device="rtsp://cam/stream", width=640, height=480)
    capture.open()
    mock_cap_class.assert_called_once_with("rtsp://cam/stream")


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_open_failure_raises_device_unavailable(mock_cap_class):
    mock_cap = _fake_cap(opened=False)
    mock_cap_class.return_value = mock_cap

    with pytest.raises(DeviceUnavailable):
        USBWebcamCapture(device=9).start()
    mock_cap.release.assert_called_once()
    mock_cap.set.assert_not_called()


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_rejected_resolution_raises_unsupported_mode(mock_cap_class):
    mock_cap = _fake_cap(width=1280, height=720)
    mock_cap_class.return_value = mock_cap

    capture = USBWebcamCapture(device=0, fps=30, width=1920, height=1080)
    with pytest.raises(UnsupportedMode):
        capture.start()
    # start() releases the handle when configuration fails
    mock_cap.release.assert_called_once()
    assert capture.cap is None


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_fps_mismatch_only_warns(mock_cap_class, caplog):
    mock_cap_class.return_value = _fake_cap(width=1920, height=1080, fps=15)
    capture = USBWebcamCapture(device=0, fps=30, width=1920, height=1080)
    with caplog.at_level("WARNING", logger=capture_mod.__name__):
        capture.start()
    assert "15.0 fps" in caplog.text


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_read_failure_raises_stream_ended(mock_cap_class):
    mock_cap_class.return_value = _fake_cap(read_ok=False)
    capture = USBWebcamCapture(device=0, width=640, height=480)
    capture.start()
    with pytest.raises(StreamEnded):
        capture.next_frame()
    assert capture.idx == 0


def test_read_before_start_raises_stream_ended():
    with pytest.raises(StreamEnded):
        USBWebcamCapture(device=0).next_frame()


@patch("aruco_acquire.strategies.capture_usb.cv2.VideoCapture")
def test_context_manager_starts_and_stops(mock_cap_class):
    mock_cap = _fake_cap()
    mock_cap_class.return_value = mock_cap
    with USBWebcamCapture(device=0, width=640, height=480) as capture:
        assert capture.cap is mock_cap
    mock_cap.release.assert_called_once()
    assert capture.cap is None


class _SlowCapture(BaseCapture):
    def __init__(self):
        super().__init__()
        self.active = 0
        self.max_active = 0
        self._count_lock = threading.Lock()

    def open(self):
        pass

    def _read(self):
        with self._count_lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.002)
        with self._count_lock:
            self.active -= 1
        return np.zeros((2, 2, 3), dtype=np.uint8)

    def stop(self):
        pass


def test_concurrent_reads_are_serialized():
    """Only one capture call may be in flight at a time."""
    capture = _SlowCapture()
    frames = []
    frames_lock = threading.Lock()

    def consumer():
        for _ in range(5):
            f = capture.next_frame()
            with frames_lock:
                frames.append(f.idx)

    threads = [threading.Thread(target=consumer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert capture.max_active == 1
    assert sorted(frames) == list(range(1, 21))


def test_synthetic_capture_renders_marker_and_ends():
    capture = SyntheticCapture(fps=0, width=320, height=240, marker_px=100, origin=(10, 20), max_frames=2)
    with capture:
        f = capture.next_frame()
        assert f.image.shape == (240, 320, 3)
        # marker border is black, background white
        assert f.image[20, 10].tolist() == [0, 0, 0]
        assert f.image[0, 0].tolist() == [255, 255, 255]
        capture.next_frame()
        with pytest.raises(StreamEnded):
            capture.next_frame()


def test_synthetic_capture_rejects_marker_outside_canvas():
    with pytest.raises(ValueError):
        SyntheticCapture(width=100, height=100, marker_px=80, origin=(40, 40))


def test_synthetic_stop_waits_for_in_flight_read():
    """stop() must not drop the canvas while a read holds the capture lock."""
    capture = SyntheticCapture(fps=0, width=320, height=240, marker_px=100)
    capture.start()
    capture._lock.acquire()
    stopper = threading.Thread(target=capture.stop)
    stopper.start()
    stopper.join(timeout=0.05)
    assert stopper.is_alive()
    assert capture._canvas is not None

    capture._lock.release()
    stopper.join(timeout=1.0)
    assert not stopper.is_alive()
    assert capture._canvas is None
