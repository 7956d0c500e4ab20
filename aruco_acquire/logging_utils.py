"""Console/file logging for one acquisition session.

Handlers hang off the package logger, so records from every module
(capture, detection, the loop) reach the same console and log file.
"""

import contextlib
import logging
from typing import Iterator, Optional

PACKAGE_LOGGER = "aruco_acquire"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(camera)s] %(name)s: %(message)s"


class CameraNameFilter(logging.Filter):
    def __init__(self, camera_name: str):
        super().__init__()
        self.camera_name = camera_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera = self.camera_name
        return True


def _prepare(handler: logging.Handler, camera_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CameraNameFilter(camera_name))
    return handler


@contextlib.contextmanager
def session_logging(
    camera_name: str,
    level: int | str = logging.INFO,
    log_path: Optional[str] = None,
) -> Iterator[logging.Logger]:
    """Attach console (and optional file) handlers for the duration of a session.

    Yields ``aruco_acquire.<camera_name>``. Handlers are detached and closed
    on exit and the package level is restored.
    """
    package = logging.getLogger(PACKAGE_LOGGER)
    handlers = [_prepare(logging.StreamHandler(), camera_name)]
    if log_path:
        handlers.append(_prepare(logging.FileHandler(log_path), camera_name))

    old_level = package.level
    package.setLevel(level)
    for h in handlers:
        package.addHandler(h)
    try:
        yield logging.getLogger(f"{PACKAGE_LOGGER}.{camera_name}")
    finally:
        for h in handlers:
            package.removeHandler(h)
            h.close()
        package.setLevel(old_level)
