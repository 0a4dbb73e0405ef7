"""Frame source abstraction for the camera side of the visualiser.

Provides a unified interface for different frame sources:
- Device cameras (USB via V4L2, or a stream URL)
- Video files
- Synthetic frames showing a moving ArUco marker
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import cv2
import numpy as np

from .config import SourceConfig
from .detect import get_dict


class FrameSource(ABC):
    """Abstract base class for frame sources."""

    @abstractmethod
    def start(self) -> None:
        """Start the frame source. Called before any read() calls."""
        ...

    @abstractmethod
    def read(self) -> np.ndarray | None:
        """Read the next BGR frame, or None if no frame is available."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop the frame source and release resources."""
        ...


def open_capture(device: int | str) -> Any:
    """Open a V4L2 device by index or /dev/videoN path; anything else goes to OpenCV as a URL."""
    if isinstance(device, int):
        return cv2.VideoCapture(device, cv2.CAP_V4L2)
    match = re.fullmatch(r"/dev/video(\d+)", str(device))
    if match:
        return cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
    return cv2.VideoCapture(str(device))


class DeviceCameraSource(FrameSource):
    """
    Live camera feed.

    A dropped read returns None. After `max_misses` consecutive dropped
    reads the camera is considered gone and read() raises RuntimeError.
    """

    def __init__(
        self,
        device: int | str,
        fps: int,
        width: int,
        height: int,
        max_misses: int = 50,
        logger: Optional[logging.Logger] = None,
    ):
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height
        self.max_misses = max_misses
        self.logger = logger or logging.getLogger(__name__)
        self.cap: Any = None
        self.misses = 0

    def start(self) -> None:
        self.cap = open_capture(self.device)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera: {self.device}")

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        got = (
            int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        if got != (self.width, self.height):
            self.logger.info(
                "camera %s negotiated %dx%d instead of %dx%d",
                self.device, got[0], got[1], self.width, self.height,
            )
        self.misses = 0

    def read(self) -> np.ndarray | None:
        if self.cap is None:
            return None
        ok, img = self.cap.read()
        if ok:
            self.misses = 0
            return img
        self.misses += 1
        if self.misses >= self.max_misses:
            raise RuntimeError(f"camera {self.device} returned no frame {self.misses} times in a row")
        return None

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class VideoFileSource(FrameSource):
    """Plays back a video file, optionally looping at the end."""

    def __init__(self, path: str, loop: bool = False):
        self.path = path
        self.loop = loop
        self.cap: Any = None

    def start(self) -> None:
        self.cap = cv2.VideoCapture(self.path)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video file: {self.path}")

    def read(self) -> np.ndarray | None:
        if self.cap is None:
            return None
        ok, img = self.cap.read()
        if not ok and self.loop:
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ok, img = self.cap.read()
        if not ok:
            return None
        return img

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


def _marker_image(dict_name: str, marker_id: int, side: int) -> np.ndarray:
    dictionary = get_dict(dict_name)
    if hasattr(cv2.aruco, "generateImageMarker"):  # OpenCV >= 4.7
        return cv2.aruco.generateImageMarker(dictionary, marker_id, side)
    return cv2.aruco.drawMarker(dictionary, marker_id, side)


class SyntheticSource(FrameSource):
    """
    Generates frames of a single ArUco marker circling the image centre.

    The marker rotates by `deg_per_frame` each frame. `last_corners` holds the
    pixel corners of the marker in the most recent frame.
    """

    def __init__(
        self,
        fps: int,
        width: int,
        height: int,
        dict_name: str = "4x4_50",
        marker_id: int = 0,
        deg_per_frame: float = 2.0,
        background: int = 90,
    ):
        self.fps = fps
        self.width = width
        self.height = height
        self.deg_per_frame = deg_per_frame
        self.background = background
        self.frame_id = 0
        self.last_corners: Optional[np.ndarray] = None
        self._last = 0.0

        side = max(16, min(width, height) // 3)
        self._pad = side // 4
        marker = _marker_image(dict_name, marker_id, side)
        marker = cv2.copyMakeBorder(
            marker, self._pad, self._pad, self._pad, self._pad, cv2.BORDER_CONSTANT, value=255
        )
        self._marker = cv2.cvtColor(marker, cv2.COLOR_GRAY2BGR)
        p, s = self._pad, side
        self._marker_corners = np.array(
            [[p, p], [p + s, p], [p + s, p + s], [p, p + s]], dtype=np.float64
        )

    def start(self) -> None:
        self.frame_id = 0
        self._last = time.time()

    def render(self, frame_id: int) -> tuple[np.ndarray, np.ndarray]:
        """Return (image, corners) for a given frame number."""
        angle = frame_id * self.deg_per_frame
        radius = 0.1 * min(self.width, self.height)
        cx = self.width / 2 + radius * np.cos(np.radians(angle))
        cy = self.height / 2 + radius * np.sin(np.radians(angle))

        mh, mw = self._marker.shape[:2]
        M = cv2.getRotationMatrix2D((mw / 2, mh / 2), angle, 1.0)
        M[0, 2] += cx - mw / 2
        M[1, 2] += cy - mh / 2

        bg = (self.background,) * 3
        img = cv2.warpAffine(self._marker, M, (self.width, self.height), borderValue=bg)
        pts = np.hstack([self._marker_corners, np.ones((4, 1))])
        corners = pts @ M.T
        return img, corners

    def read(self) -> np.ndarray | None:
        if self.fps > 0:
            wait = max(0.0, (1.0 / self.fps) - (time.time() - self._last))
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        self.frame_id += 1
        img, self.last_corners = self.render(self.frame_id)
        return img

    def stop(self) -> None:
        return None


def build_source(cfg: SourceConfig, fps: int, width: int, height: int, dict_name: str = "4x4_50") -> FrameSource:
    kind = cfg.type.strip().lower()
    if kind == "synthetic":
        return SyntheticSource(fps, width, height, dict_name=dict_name)
    if kind == "file":
        if not cfg.path:
            raise ValueError("source.path is required for a file source")
        return VideoFileSource(cfg.path, loop=cfg.loop)
    if kind in {"v4l2", "device", "camera"}:
        return DeviceCameraSource(cfg.device, fps, width, height)
    raise ValueError(f"Unknown source type: {cfg.type}")
