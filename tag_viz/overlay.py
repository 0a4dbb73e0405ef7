from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence

import cv2
import numpy as np

from .projection import DegenerateProjection, project
from .tag_types import Detection, DetectionBatch


# BGRA, indexed by corner position
CORNER_COLOURS = (
    (0, 0, 255, 255),    # red
    (0, 255, 0, 255),    # green
    (255, 0, 0, 255),    # blue
    (0, 255, 255, 255),  # yellow
)

AXIS_X_COLOUR = CORNER_COLOURS[0]
AXIS_Y_COLOUR = CORNER_COLOURS[1]
AXIS_THICKNESS = 3
CORNER_RADIUS = 5
CORNER_THICKNESS = 2

# Drawing coordinates are clamped to this range to stay within int32.
COORD_LIMIT = 1 << 20


class UnknownOverlayMode(ValueError):
    pass


class OverlayMode(str, Enum):
    AXES = "axes"
    TRI = "tri"

    @classmethod
    def parse(cls, value: "OverlayMode | str") -> "OverlayMode":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for mode in cls:
            if mode.value == key:
                return mode
        raise UnknownOverlayMode(
            f"unknown overlay mode {value!r} (expected one of: "
            f"{', '.join(m.value for m in cls)})"
        )


def _pt(p: Sequence[float]) -> tuple[int, int]:
    x = min(max(float(p[0]), -COORD_LIMIT), COORD_LIMIT)
    y = min(max(float(p[1]), -COORD_LIMIT), COORD_LIMIT)
    return int(round(x)), int(round(y))


class OverlayRenderer:
    """
    Draws a batch of detections into a fresh transparent BGRA layer.

    Pixels touched by an annotation are opaque, everything else stays
    (0, 0, 0, 0). The returned layer is read-only.
    """

    def __init__(self, mode: OverlayMode | str = OverlayMode.AXES, logger: Optional[logging.Logger] = None):
        self.mode = OverlayMode.parse(mode)
        self.logger = logger or logging.getLogger(__name__)

    def render(self, batch: DetectionBatch, frame_shape: Sequence[int]) -> np.ndarray:
        h, w = int(frame_shape[0]), int(frame_shape[1])
        overlay = np.zeros((h, w, 4), dtype=np.uint8)

        skipped = 0
        for det in batch:
            try:
                self._draw_detection(overlay, det)
            except DegenerateProjection as e:
                skipped += 1
                self.logger.warning("skipping degenerate detection id=%s: %s", det.tag_id, e)

        if skipped:
            self.logger.debug("rendered %d/%d detections", len(batch) - skipped, len(batch))

        overlay.setflags(write=False)
        return overlay

    def _draw_detection(self, overlay: np.ndarray, det: Detection) -> None:
        # Project everything up front so a degenerate detection leaves no partial drawing.
        if self.mode is OverlayMode.AXES:
            c = _pt(project(det.homography, (0.0, 0.0)))
            x = _pt(project(det.homography, (1.0, 0.0)))
            y = _pt(project(det.homography, (0.0, 1.0)))
            cv2.line(overlay, c, x, AXIS_X_COLOUR, AXIS_THICKNESS)
            cv2.line(overlay, c, y, AXIS_Y_COLOUR, AXIS_THICKNESS)
        elif self.mode is OverlayMode.TRI:
            centre = _pt(det.centre)
            for i in range(4):
                tri = np.array(
                    [centre, _pt(det.corners[i]), _pt(det.corners[(i + 1) % 4])],
                    dtype=np.int32,
                )
                cv2.fillConvexPoly(overlay, tri, CORNER_COLOURS[i])
        else:
            raise UnknownOverlayMode(f"no drawing routine for overlay mode {self.mode!r}")

        for i in range(4):
            cv2.circle(overlay, _pt(det.corners[i]), CORNER_RADIUS, CORNER_COLOURS[i], CORNER_THICKNESS)
