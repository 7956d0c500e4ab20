import argparse
import json
import signal
import sys

from .acquire import MarkerAcquisition
from .config import AcquireConfig, DetectionParameters, load_config
from .errors import AcquisitionCancelled, AcquisitionError, NoMarkerFound
from .factory import StrategyFactory
from .logging_utils import session_logging
from .strategies.detect_aruco import get_dict

EXIT_OK = 0
EXIT_DEVICE = 1
EXIT_NO_MARKER = 2
EXIT_CANCELLED = 130


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Block until exactly one ArUco marker is visible and print its corners")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--camera-name")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--dict")
    ap.add_argument("--win-size-min", type=int)
    ap.add_argument("--win-size-max", type=int)
    ap.add_argument("--win-size-step", type=int)
    ap.add_argument("--max-attempts", type=int, help="Give up after this many frames (default: never)")
    ap.add_argument("--dry-run", action="store_true", help="Use a synthetic marker scene instead of a camera")
    ap.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("--log-file")

    return ap


def _apply_args(cfg: AcquireConfig, args: argparse.Namespace) -> AcquireConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)

    det = cfg.detection
    detection = DetectionParameters(
        win_size_min=args.win_size_min if args.win_size_min is not None else det.win_size_min,
        win_size_max=args.win_size_max if args.win_size_max is not None else det.win_size_max,
        win_size_step=args.win_size_step if args.win_size_step is not None else det.win_size_step,
    )

    cfg.apply_overrides(
        camera_name=args.camera_name,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        aruco_dict=args.dict,
        detection=detection,
        max_attempts=args.max_attempts,
        dry_run=args.dry_run if args.dry_run else None,
        log_level=args.log_level,
    )
    return cfg


def _validate(cfg: AcquireConfig) -> None:
    if cfg.max_attempts is not None and cfg.max_attempts <= 0:
        raise ValueError(f"--max-attempts must be a positive integer, got {cfg.max_attempts}")
    get_dict(cfg.aruco_dict)


def _acquire(cfg: AcquireConfig, logger) -> int:
    logger.info("config: %s", cfg.as_dict())

    cap, pre, det = StrategyFactory.from_config(cfg)
    acquisition = MarkerAcquisition(
        cap,
        cfg.aruco_dict,
        cfg.detection,
        pre=pre,
        det=det,
        logger=logger,
        max_attempts=cfg.max_attempts,
    )

    def _handle_signal(_sig, _frame):
        acquisition.stop()

    signums = [signal.SIGINT] + ([signal.SIGTERM] if hasattr(signal, "SIGTERM") else [])
    previous = {s: signal.signal(s, _handle_signal) for s in signums}

    try:
        with cap:
            corners = acquisition.run()
    except AcquisitionCancelled as e:
        logger.warning("%s", e)
        return EXIT_CANCELLED
    except NoMarkerFound as e:
        logger.error("%s", e)
        return EXIT_NO_MARKER
    except AcquisitionError as e:
        logger.error("%s", e)
        return EXIT_DEVICE
    finally:
        for s, handler in previous.items():
            signal.signal(s, handler)

    print(json.dumps(corners.as_dict()))
    return EXIT_OK


def main(argv=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    try:
        cfg = load_config(args.config) if args.config else AcquireConfig()
        cfg = _apply_args(cfg, args)
        _validate(cfg)
    except (OSError, ValueError) as e:
        ap.error(str(e))

    with session_logging(cfg.camera_name, cfg.log_level, args.log_file) as logger:
        return _acquire(cfg, logger)


if __name__ == "__main__":
    sys.exit(main())
