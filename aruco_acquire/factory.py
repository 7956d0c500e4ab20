from .config import AcquireConfig
from .strategies.capture_usb import USBWebcamCapture
from .strategies.capture_synthetic import SyntheticCapture
from .strategies.preprocess import default_chain
from .strategies.detect_aruco import ArucoDetect


class StrategyFactory:
    @staticmethod
    def from_config(config: AcquireConfig):
        # Camera (synthetic marker scene for dry runs)
        if config.dry_run:
            side = min(200, config.width // 2, config.height // 2)
            cap = SyntheticCapture(
                fps=config.fps,
                width=config.width,
                height=config.height,
                marker_px=side,
                origin=((config.width - side) // 2, (config.height - side) // 2),
                dict_name=config.aruco_dict,
            )
        else:
            cap = USBWebcamCapture(
                device=config.device,
                fps=config.fps,
                width=config.width,
                height=config.height,
            )

        pre = default_chain()
        det = ArucoDetect()
        return cap, pre, det
