from ..ip_types import AcquiredCorners, MarkerCandidate


def extract(candidate: MarkerCandidate) -> AcquiredCorners:
    """Copy a candidate's 4 corners, in detector order, into AcquiredCorners.

    No reordering or perspective correction: callers get raw image-plane
    coordinates, typically top-left, top-right, bottom-right, bottom-left.
    """
    pts = candidate.corners.reshape(4, 2)
    points = tuple((float(x), float(y)) for x, y in pts)
    return AcquiredCorners(points=points, marker_id=candidate.marker_id)
