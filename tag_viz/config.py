from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional


@dataclass
class SourceConfig:
    """Configuration for the frame source (camera, video file, synthetic)."""

    type: str = "v4l2"  # "v4l2", "file", "synthetic"
    device: int | str = 0
    path: Optional[str] = None  # For type="file"
    loop: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class VizConfig:
    node_name: str = "apriltag_viz"
    overlay_mode: str = "axes"  # "axes" or "tri"
    alpha: float = 0.5
    window_name: str = "tag"
    headless: bool = False
    fps: int = 30
    width: int = 640
    height: int = 480
    jpeg_quality: int = 90
    max_pending: int = 2  # per event kind; older pending events are dropped
    aruco_dict: str = "4x4_50"
    max_frames: Optional[int] = None
    duration_sec: Optional[float] = None
    log_level: str = "INFO"
    source: SourceConfig = field(default_factory=SourceConfig)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "VizConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def check_alpha(alpha: float) -> float:
    alpha = float(alpha)
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be within [0, 1], got {alpha}")
    return alpha


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def _optional(value: Any, cast) -> Any:
    return None if value is None else cast(value)


def load_config(path: str | Path) -> VizConfig:
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

    cfg = VizConfig()
    cfg.node_name = str(raw.get("node_name", cfg.node_name))
    # Kept as a string; an unknown mode halts overlay rendering at runtime.
    cfg.overlay_mode = str(raw.get("overlay_mode", cfg.overlay_mode))
    cfg.alpha = check_alpha(raw.get("alpha", cfg.alpha))
    cfg.window_name = str(raw.get("window_name", cfg.window_name))
    cfg.headless = bool(raw.get("headless", cfg.headless))
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.jpeg_quality = int(raw.get("jpeg_quality", cfg.jpeg_quality))
    cfg.max_pending = int(raw.get("max_pending", cfg.max_pending))
    if cfg.max_pending < 1:
        raise ValueError(f"max_pending must be >= 1, got {cfg.max_pending}")
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.max_frames = _optional(raw.get("max_frames", cfg.max_frames), int)
    cfg.duration_sec = _optional(raw.get("duration_sec", cfg.duration_sec), float)
    cfg.log_level = str(raw.get("log_level", cfg.log_level)).upper()

    src_raw = raw.get("source")
    if src_raw is not None:
        if not isinstance(src_raw, dict):
            raise ValueError("source must be a mapping")
        src_cfg = SourceConfig()
        src_cfg.type = str(src_raw.get("type", src_cfg.type))
        src_cfg.device = src_raw.get("device", src_cfg.device)
        if isinstance(src_cfg.device, str) and src_cfg.device.isdigit():
            src_cfg.device = int(src_cfg.device)
        src_cfg.path = _optional(src_raw.get("path", src_cfg.path), str)
        src_cfg.loop = bool(src_raw.get("loop", src_cfg.loop))
        cfg.source = src_cfg

    return cfg
