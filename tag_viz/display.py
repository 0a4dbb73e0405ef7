from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import cv2
import numpy as np


class DisplaySink(ABC):
    @abstractmethod
    def show(self, image: np.ndarray) -> bool:
        """Present an image. Returns False when the user asked to quit."""
        ...

    @abstractmethod
    def close(self) -> None: ...


class WindowSink(DisplaySink):
    def __init__(self, window_name: str = "tag"):
        self.window_name = window_name
        self._opened = False

    def show(self, image: np.ndarray) -> bool:
        if not self._opened:
            cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            self._opened = True
        cv2.imshow(self.window_name, image)
        key = cv2.waitKey(1) & 0xFF
        return key not in (ord("q"), 27)

    def close(self) -> None:
        if self._opened:
            cv2.destroyWindow(self.window_name)
            self._opened = False


class NullSink(DisplaySink):
    """Headless sink; keeps only the last image."""

    def __init__(self):
        self.last: Optional[np.ndarray] = None
        self.count = 0

    def show(self, image: np.ndarray) -> bool:
        self.last = image
        self.count += 1
        return True

    def close(self) -> None:
        return None
