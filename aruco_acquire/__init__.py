"""Single-marker ArUco corner acquisition from a live camera."""

from .acquire import AcquireState, MarkerAcquisition, acquire_marker_corners
from .config import AcquireConfig, DetectionParameters, load_config
from .errors import (
    AcquisitionCancelled,
    AcquisitionError,
    DeviceUnavailable,
    NoMarkerFound,
    StreamEnded,
    UnsupportedMode,
)
from .ip_types import AcquiredCorners, DetectionResult, Frame, MarkerCandidate

__all__ = [
    "AcquireConfig",
    "AcquireState",
    "AcquiredCorners",
    "AcquisitionCancelled",
    "AcquisitionError",
    "DetectionParameters",
    "DetectionResult",
    "DeviceUnavailable",
    "Frame",
    "MarkerAcquisition",
    "MarkerCandidate",
    "NoMarkerFound",
    "StreamEnded",
    "UnsupportedMode",
    "acquire_marker_corners",
    "load_config",
]
