"""Errors surfaced by the acquisition pipeline.

A frame with zero or several markers is not an error: the loop retries it.
Only the conditions below ever reach the caller.
"""


class AcquisitionError(RuntimeError):
    """Base class for every failure raised by aruco_acquire."""


class DeviceUnavailable(AcquisitionError):
    """The camera device could not be opened."""


class UnsupportedMode(AcquisitionError):
    """The device rejected the requested resolution."""


class StreamEnded(AcquisitionError):
    """A capture call failed; no further frames will arrive."""


class NoMarkerFound(AcquisitionError):
    """The attempt budget ran out before exactly one marker was seen."""

    def __init__(self, attempts: int):
        super().__init__(f"no single marker found after {attempts} attempt(s)")
        self.attempts = attempts


class AcquisitionCancelled(AcquisitionError):
    """The acquisition was stopped before a marker was accepted."""

    def __init__(self, attempts: int):
        super().__init__(f"acquisition cancelled after {attempts} attempt(s)")
        self.attempts = attempts
