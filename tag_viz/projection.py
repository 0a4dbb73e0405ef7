"""Planar homography utilities for tag overlays."""

import math
from typing import Tuple

import cv2
import numpy as np


EPSILON = 1e-9

# Tag-local corner coordinates, in detector corner order.
TAG_SQUARE = np.array(
    [[-1.0, -1.0], [1.0, -1.0], [1.0, 1.0], [-1.0, 1.0]], dtype=np.float32
)


class DegenerateProjection(ValueError):
    """Raised when a homography cannot map a point to finite pixel coordinates."""


def project(H: np.ndarray, point: Tuple[float, float]) -> Tuple[float, float]:
    """
    Map a point from tag-local coordinates to pixel coordinates.

    Computes H @ (x, y, 1) and divides by the homogeneous component
    w = H[2,0]*x + H[2,1]*y + H[2,2].

    Args:
        H: 3x3 homography (or 9 row-major values)
        point: (x, y) in tag-local coordinates

    Returns:
        (u, v) in pixel coordinates

    Raises:
        DegenerateProjection: if w is within EPSILON of zero or the result
            is not finite
    """
    H = np.asarray(H, dtype=np.float64).reshape(3, 3)
    x, y = float(point[0]), float(point[1])

    w = H[2, 0] * x + H[2, 1] * y + H[2, 2]
    if not math.isfinite(w) or abs(w) <= EPSILON:
        raise DegenerateProjection(f"perspective divide by w={w!r} at point ({x}, {y})")

    u = (H[0, 0] * x + H[0, 1] * y + H[0, 2]) / w
    v = (H[1, 0] * x + H[1, 1] * y + H[1, 2]) / w
    if not (math.isfinite(u) and math.isfinite(v)):
        raise DegenerateProjection(f"non-finite projection ({u}, {v})")

    return float(u), float(v)


def homography_from_corners(corners: np.ndarray) -> np.ndarray:
    """
    Homography mapping the tag-local square onto four pixel corners.

    The tag-local frame spans (-1,-1)..(1,1) with the origin at the tag
    centre, so project(H, (0, 0)) is the centre of the tag.

    Args:
        corners: (4,2) pixel corners in detector order

    Returns:
        3x3 homography normalised so that H[2,2] == 1
    """
    dst = np.asarray(corners, dtype=np.float32).reshape(4, 2)
    H = cv2.getPerspectiveTransform(TAG_SQUARE, dst).astype(np.float64)
    if abs(H[2, 2]) > EPSILON:
        H /= H[2, 2]
    return H
