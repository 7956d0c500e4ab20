from typing import Any, Optional, Tuple

import cv2

from ..config import DetectionParameters
from ..ip_types import Frame, DetectionResult, MarkerCandidate

_DICT_NAMES = [
    f"{bits}x{bits}_{size}" for bits in (4, 5, 6, 7) for size in (50, 100, 250, 1000)
]


def _normalize_dict_name(name: str) -> str:
    key = (name or "").strip()
    if key.upper().startswith("DICT_"):
        key = key[5:]
    return key.lower()


def get_dict(name: str):
    """
    ArUco dictionary resolver: "4x4_100", "DICT_4X4_100", ...
    Works on OpenCV >= 4.7 (getPredefinedDictionary) and older (Dictionary_get).
    """
    key = _normalize_dict_name(name)
    if key not in _DICT_NAMES:
        raise ValueError(f"Unknown ArUco dictionary: {name!r}")
    code = getattr(cv2.aruco, f"DICT_{key.upper()}")

    if hasattr(cv2.aruco, "getPredefinedDictionary"):           # OpenCV >= 4.7
        return cv2.aruco.getPredefinedDictionary(code)
    return cv2.aruco.Dictionary_get(code)                        # Older OpenCV


def make_params(parameters: Optional[DetectionParameters] = None):
    """Create detector parameters across OpenCV versions."""
    if hasattr(cv2.aruco, "DetectorParameters_create"):
        params = cv2.aruco.DetectorParameters_create()
    else:
        params = cv2.aruco.DetectorParameters()
    if parameters is not None:
        params.adaptiveThreshWinSizeMin = parameters.win_size_min
        params.adaptiveThreshWinSizeMax = parameters.win_size_max
        params.adaptiveThreshWinSizeStep = parameters.win_size_step
    return params


DetectorState = Tuple[Any, Any, Any]


def build_detector(dict_name: str, parameters: Optional[DetectionParameters] = None) -> DetectorState:
    dictionary = get_dict(dict_name)
    params = make_params(parameters)
    detector = None
    # Prefer the newer ArucoDetector API if present
    if hasattr(cv2.aruco, "ArucoDetector"):
        detector = cv2.aruco.ArucoDetector(dictionary, params)
    return dictionary, params, detector


def detect_markers(image, detector_state: DetectorState) -> DetectionResult:
    dictionary, params, detector = detector_state
    if detector is not None:
        corners, ids, rejected = detector.detectMarkers(image)
    else:
        corners, ids, rejected = cv2.aruco.detectMarkers(
            image, dictionary, parameters=params
        )

    result = DetectionResult(rejected=list(rejected) if rejected is not None else [])
    if ids is not None and len(ids) > 0:
        for i, mid in enumerate(ids.flatten()):
            result.candidates.append(MarkerCandidate(int(mid), corners[i]))
    return result


class ArucoDetect:
    """
    Strategy: find ArUco markers in a preprocessed frame.
    Built OpenCV detectors are cached per (dictionary, parameters).
    """
    def __init__(self):
        self._cache: dict[tuple[str, DetectionParameters], DetectorState] = {}

    def _state(self, dict_name: str, parameters: DetectionParameters) -> DetectorState:
        key = (_normalize_dict_name(dict_name), parameters)
        state = self._cache.get(key)
        if state is None:
            state = build_detector(dict_name, parameters)
            self._cache[key] = state
        return state

    def detect(self, f: Frame, dict_name: str, parameters: DetectionParameters) -> DetectionResult:
        return detect_markers(f.image, self._state(dict_name, parameters))
