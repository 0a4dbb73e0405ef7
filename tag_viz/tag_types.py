from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import numpy as np


@dataclass
class Frame:
    idx: int
    image: Any  # (h, w, 3) uint8 BGR

    @property
    def shape(self) -> tuple[int, int]:
        h, w = self.image.shape[:2]
        return h, w


@dataclass
class Detection:
    """One tag observation in the pixel space of the frame it was found in."""

    tag_id: int
    corners: Any  # (4,2) ndarray
    centre: Any  # (2,) ndarray
    homography: Any  # (3,3) ndarray
    family: Optional[str] = None

    def __post_init__(self) -> None:
        self.corners = np.asarray(self.corners, dtype=np.float64).reshape(-1, 2)
        self.centre = np.asarray(self.centre, dtype=np.float64).reshape(-1)
        self.homography = np.asarray(self.homography, dtype=np.float64)
        if self.corners.shape != (4, 2):
            raise ValueError(f"detection needs 4 corners, got {self.corners.shape[0]}")
        if self.centre.shape != (2,):
            raise ValueError("centre must be a single (x, y) point")
        if not (np.isfinite(self.corners).all() and np.isfinite(self.centre).all()):
            raise ValueError("corners and centre must be finite")
        if self.homography.size != 9:
            raise ValueError("homography must have 9 values (row-major 3x3)")
        self.homography = self.homography.reshape(3, 3)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Detection":
        return cls(
            tag_id=int(raw.get("id", -1)),
            corners=raw["corners"],
            centre=raw["centre"],
            homography=raw["homography"],
            family=raw.get("family"),
        )


@dataclass
class DetectionBatch:
    detections: list[Detection] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.detections)

    def __iter__(self) -> Iterator[Detection]:
        return iter(self.detections)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DetectionBatch":
        return cls([Detection.from_dict(d) for d in raw.get("detections", [])])
