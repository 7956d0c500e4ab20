from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class DetectionParameters:
    """Adaptive-threshold window sweep handed to the ArUco detector."""

    win_size_min: int = 3
    win_size_max: int = 23
    win_size_step: int = 10

    def __post_init__(self):
        if self.win_size_min < 3:
            raise ValueError(f"win_size_min must be >= 3, got {self.win_size_min}")
        if self.win_size_max < self.win_size_min:
            raise ValueError(
                f"win_size_max ({self.win_size_max}) must be >= win_size_min ({self.win_size_min})"
            )
        if self.win_size_step <= 0:
            raise ValueError(f"win_size_step must be > 0, got {self.win_size_step}")

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class AcquireConfig:
    camera_name: str = "cam"
    device: int | str = 0
    width: int = 1920
    height: int = 1080
    fps: int = 30
    aruco_dict: str = "4x4_100"
    detection: DetectionParameters = field(default_factory=DetectionParameters)
    max_attempts: Optional[int] = None
    dry_run: bool = False
    log_level: str = "INFO"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "AcquireConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _parse_detection(value: Any, default: DetectionParameters) -> DetectionParameters:
    if value is None:
        return default
    if not isinstance(value, dict):
        raise ValueError("detection must be a mapping of win_size_min/win_size_max/win_size_step")
    return DetectionParameters(
        win_size_min=int(value.get("win_size_min", default.win_size_min)),
        win_size_max=int(value.get("win_size_max", default.win_size_max)),
        win_size_step=int(value.get("win_size_step", default.win_size_step)),
    )


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def load_config(path: str | Path) -> AcquireConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = AcquireConfig()
    cfg.camera_name = str(raw.get("camera_name", cfg.camera_name))
    cfg.device = raw.get("device", cfg.device)
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.detection = _parse_detection(raw.get("detection"), cfg.detection)
    cfg.max_attempts = raw.get("max_attempts", cfg.max_attempts)
    if cfg.max_attempts is not None:
        cfg.max_attempts = int(cfg.max_attempts)
        if cfg.max_attempts <= 0:
            raise ValueError("max_attempts must be a positive integer or null")
    cfg.dry_run = bool(raw.get("dry_run", cfg.dry_run))
    cfg.log_level = str(raw.get("log_level", cfg.log_level)).upper()
    return cfg
