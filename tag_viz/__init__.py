"""Live overlay of tag detections on a camera feed."""

from .compositor import CompositorState, StreamCompositor
from .config import VizConfig
from .overlay import OverlayMode, OverlayRenderer
from .projection import project
from .worker import OverlayWorker

__all__ = [
    "CompositorState",
    "OverlayMode",
    "OverlayRenderer",
    "OverlayWorker",
    "StreamCompositor",
    "VizConfig",
    "project",
]
