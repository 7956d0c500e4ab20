from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np


@dataclass
class Frame:
    idx: int
    ts_iso: str
    image: Any  # numpy array, (H, W, 3) BGR or (H, W) gray

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def channels(self) -> int:
        return 1 if self.image.ndim == 2 else int(self.image.shape[2])


@dataclass
class MarkerCandidate:
    marker_id: int
    corners: Any  # (4,2) float32 ndarray

    def __post_init__(self):
        pts = np.asarray(self.corners, dtype=np.float32)
        if pts.size != 8:
            raise ValueError(f"marker {self.marker_id}: expected 4 corner points, got shape {pts.shape}")
        self.corners = pts.reshape(4, 2)
        self.marker_id = int(self.marker_id)


@dataclass
class DetectionResult:
    candidates: list[MarkerCandidate] = field(default_factory=list)
    rejected: list = field(default_factory=list)  # diagnostic only

    def __len__(self) -> int:
        return len(self.candidates)


Point = tuple[float, float]

_ORIGIN_CORNERS: tuple[Point, Point, Point, Point] = ((0.0, 0.0),) * 4


@dataclass(frozen=True)
class AcquiredCorners:
    """Corners of the accepted marker, in detector winding order."""

    points: tuple[Point, Point, Point, Point] = _ORIGIN_CORNERS
    marker_id: Optional[int] = None

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.float32)

    def as_dict(self) -> dict[str, Any]:
        return {
            "marker_id": self.marker_id,
            "corners": [list(p) for p in self.points],
        }
