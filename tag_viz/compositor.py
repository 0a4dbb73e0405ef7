from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import cv2
import numpy as np

from .config import check_alpha
from .decode import DecodeFailure, decode_frame
from .overlay import OverlayMode, OverlayRenderer, UnknownOverlayMode
from .tag_types import DetectionBatch, Frame


class CompositorState(str, Enum):
    EMPTY = "empty"
    FRAME_ONLY = "frame-only"
    COMPOSITED = "composited"


class StreamCompositor:
    """
    Holds the latest frame and the latest overlay and blends them.

    The two pieces of state change independently: on_frame replaces the
    frame and produces the displayed image, on_detections replaces the
    overlay. Both must be called from a single thread. An overlay rendered
    against an older frame is still blended onto newer frames.
    """

    def __init__(
        self,
        overlay_mode: OverlayMode | str = OverlayMode.AXES,
        alpha: float = 0.5,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.alpha = check_alpha(alpha)

        self._frame: Optional[Frame] = None
        self._overlay: Optional[np.ndarray] = None
        self._displayed: Optional[np.ndarray] = None
        self._frames_seen = 0

        self.renderer: Optional[OverlayRenderer] = None
        try:
            self.renderer = OverlayRenderer(overlay_mode, logger=self.logger)
        except UnknownOverlayMode as e:
            self._halt_overlay(e)

    @property
    def frame(self) -> Optional[Frame]:
        return self._frame

    @property
    def overlay(self) -> Optional[np.ndarray]:
        return self._overlay

    @property
    def displayed(self) -> Optional[np.ndarray]:
        return self._displayed

    @property
    def overlay_halted(self) -> bool:
        return self.renderer is None

    @property
    def state(self) -> CompositorState:
        if self._frame is None:
            return CompositorState.EMPTY
        if self._overlay is None:
            return CompositorState.FRAME_ONLY
        return CompositorState.COMPOSITED

    def set_alpha(self, alpha: float) -> None:
        self.alpha = check_alpha(alpha)

    def _halt_overlay(self, err: Exception) -> None:
        self.renderer = None
        self.logger.error("overlay rendering disabled: %s", err)

    def on_frame(self, payload: Any) -> Optional[np.ndarray]:
        """
        Accept a new frame and return the image to display.

        Args:
            payload: compressed image bytes, or an already decoded BGR array

        Returns:
            The composited image, or None if the payload could not be decoded
            (the previously displayed image is kept).
        """
        try:
            img = payload if isinstance(payload, np.ndarray) else decode_frame(payload)
            if img.ndim != 3 or img.shape[2] != 3 or img.dtype != np.uint8:
                raise DecodeFailure(
                    f"expected a 3-channel uint8 image, got shape {img.shape} dtype {img.dtype}"
                )
        except DecodeFailure as e:
            self.logger.warning("dropping frame: %s", e)
            return None

        self._frames_seen += 1
        self._frame = Frame(self._frames_seen, img)

        overlay = self._overlay
        if overlay is None:
            merged = img
        elif overlay.shape[:2] != img.shape[:2]:
            self.logger.debug(
                "overlay size %s does not match frame size %s; showing raw frame",
                overlay.shape[:2],
                img.shape[:2],
            )
            merged = img
        else:
            merged = cv2.addWeighted(img, 1.0, cv2.cvtColor(overlay, cv2.COLOR_BGRA2BGR), self.alpha, 0)

        self._displayed = merged
        return merged

    def on_detections(self, batch: DetectionBatch) -> bool:
        """
        Render a detection batch against the latest frame and publish it.

        Returns:
            True if a new overlay was published.
        """
        if self.renderer is None:
            return False
        if self._frame is None:
            self.logger.debug("no frame yet; discarding %d detections", len(batch))
            return False

        try:
            overlay = self.renderer.render(batch, self._frame.shape)
        except UnknownOverlayMode as e:
            self._halt_overlay(e)
            return False

        self._overlay = overlay
        return True
