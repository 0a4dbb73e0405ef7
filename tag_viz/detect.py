from abc import ABC, abstractmethod
from typing import Any

import cv2
import numpy as np

from .projection import homography_from_corners
from .tag_types import Detection, DetectionBatch


def get_dict(name: str):
    """
    ArUco dictionary resolver.
    Accepts "4x4_50" or "DICT_4X4_50"; falls back to 4x4_50 if not recognized.
    Works on OpenCV >= 4.7 (getPredefinedDictionary) and older (Dictionary_get).
    """
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    table = {
        "4x4_50":  cv2.aruco.DICT_4X4_50,
        "4x4_100": cv2.aruco.DICT_4X4_100,
        "5x5_50":  cv2.aruco.DICT_5X5_50,
        "5x5_100": cv2.aruco.DICT_5X5_100,
        "6x6_50":  cv2.aruco.DICT_6X6_50,
        "6x6_100": cv2.aruco.DICT_6X6_100,
        "7x7_50":  cv2.aruco.DICT_7X7_50,
        "7x7_100": cv2.aruco.DICT_7X7_100,
        "apriltag_36h11": cv2.aruco.DICT_APRILTAG_36h11,
    }
    code = table.get(key, cv2.aruco.DICT_4X4_50)

    if hasattr(cv2.aruco, "getPredefinedDictionary"):
        return cv2.aruco.getPredefinedDictionary(code)
    return cv2.aruco.Dictionary_get(code)


def _make_params():
    """Create detector parameters across OpenCV versions."""
    if hasattr(cv2.aruco, "DetectorParameters_create"):
        return cv2.aruco.DetectorParameters_create()
    return cv2.aruco.DetectorParameters()


class TagProducer(ABC):
    @abstractmethod
    def detect(self, image: np.ndarray) -> DetectionBatch: ...


class ArucoTagProducer(TagProducer):
    """
    Produces detection batches with OpenCV's ArUco detector.
    Each detection carries the corners, their centre and the homography from
    the tag-local square onto the corners.
    """

    def __init__(self, dict_name: str = "4x4_50"):
        self.family = (dict_name or "").strip().lower()
        self.dictionary = get_dict(dict_name)
        self.params = _make_params()
        self._detector: Any = None
        if hasattr(cv2.aruco, "ArucoDetector"):
            self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def detect(self, image: np.ndarray) -> DetectionBatch:
        if self._detector is not None:
            corners, ids, _rej = self._detector.detectMarkers(image)
        else:
            corners, ids, _rej = cv2.aruco.detectMarkers(
                image, self.dictionary, parameters=self.params
            )

        batch = DetectionBatch()
        if ids is not None and len(ids) > 0:
            for i, mid in enumerate(np.asarray(ids).flatten()):
                c = np.asarray(corners[i], dtype=np.float64).reshape(4, 2)
                batch.detections.append(
                    Detection(
                        tag_id=int(mid),
                        corners=c,
                        centre=c.mean(axis=0),
                        homography=homography_from_corners(c),
                        family=self.family,
                    )
                )
        return batch
