from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

import cv2
import numpy as np

from .compositor import StreamCompositor
from .config import VizConfig
from .decode import encode_frame
from .detect import ArucoTagProducer, TagProducer
from .display import DisplaySink, NullSink, WindowSink
from .logging_utils import configure_logging
from .sources import FrameSource, build_source
from .tag_types import DetectionBatch


@dataclass
class FrameEvent:
    payload: Any  # compressed bytes or decoded ndarray


@dataclass
class DetectionEvent:
    batch: DetectionBatch


@dataclass
class RunSummary:
    frames_displayed: int
    batches_rendered: int
    batches_dropped: int
    decode_failures: int
    avg_fps: float
    overlay_halted: bool
    events_skipped: int = 0


class EventQueue(queue.Queue):
    """
    Unbounded FIFO that caps how many events of each kind may be pending.

    When an event arrives and `max_pending` events of the same kind are
    already waiting, the oldest of those is dropped. Everything else keeps
    its place, so the relative order of surviving events is unchanged.
    """

    def __init__(self, max_pending: int = 2, logger: Optional[logging.Logger] = None):
        if max_pending < 1:
            raise ValueError(f"max_pending must be >= 1, got {max_pending}")
        self.max_pending = max_pending
        self.logger = logger or logging.getLogger(__name__)
        self.skipped = 0
        super().__init__()

    def _put(self, item) -> None:
        kind = type(item)
        pending = [i for i, e in enumerate(self.queue) if type(e) is kind]
        if len(pending) >= self.max_pending:
            del self.queue[pending[0]]
            self.skipped += 1
            self.logger.debug("event queue full; dropped oldest pending %s", kind.__name__)
        self.queue.append(item)


class OverlayWorker:
    """
    Feeds frame and detection events into one StreamCompositor.

    Producers on any thread call submit_frame / submit_detections. Events go
    into a single FIFO and are handled one at a time, to completion, by the
    thread calling spin_once() or run().
    """

    def __init__(
        self,
        config: VizConfig,
        logger=None,
        source: Optional[FrameSource] = None,
        producer: Optional[TagProducer] = None,
        sink: Optional[DisplaySink] = None,
        compositor: Optional[StreamCompositor] = None,
    ):
        self.config = config
        self.logger = logger or configure_logging(config.node_name, config.log_level)
        self.compositor = compositor or StreamCompositor(
            config.overlay_mode, config.alpha, logger=self.logger
        )
        self.source = source
        self.producer = producer
        self.sink = sink

        self.events = EventQueue(config.max_pending, logger=self.logger)
        self._mailbox: queue.Queue = queue.Queue(maxsize=1)
        self._stop_event = threading.Event()

        self.frames_displayed = 0
        self.batches_rendered = 0
        self.batches_dropped = 0
        self.decode_failures = 0

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def submit_frame(self, payload: Any) -> None:
        self.events.put(FrameEvent(payload))

    def submit_detections(self, batch: DetectionBatch) -> None:
        self.events.put(DetectionEvent(batch))

    def handle(self, event: FrameEvent | DetectionEvent) -> bool:
        """Handle one event. Returns False when the display asked to quit."""
        if isinstance(event, FrameEvent):
            merged = self.compositor.on_frame(event.payload)
            if merged is None:
                self.decode_failures += 1
                return True
            self.frames_displayed += 1
            if self.sink is not None and not self.sink.show(merged):
                self.logger.info("display closed by user")
                return False
            return True

        if self.compositor.on_detections(event.batch):
            self.batches_rendered += 1
        else:
            self.batches_dropped += 1
        return True

    def spin_once(self, timeout: Optional[float] = None) -> bool:
        """Handle the oldest pending event. Returns False if none arrived in time."""
        try:
            event = self.events.get(timeout=timeout)
        except queue.Empty:
            return False
        if not self.handle(event):
            self.stop()
        return True

    def _offer_image(self, image: np.ndarray) -> None:
        # Single slot, newest image wins.
        try:
            self._mailbox.get_nowait()
        except queue.Empty:
            pass
        try:
            self._mailbox.put_nowait(image)
        except queue.Full:
            pass

    def _frame_pump(self, source: FrameSource) -> None:
        while not self._stop_event.is_set():
            try:
                img = source.read()
            except Exception:
                self.logger.exception("frame source failed; stopping")
                self.stop()
                return
            if img is None:
                time.sleep(0.01)
                continue
            try:
                payload = encode_frame(img, self.config.jpeg_quality)
            except (RuntimeError, cv2.error) as e:
                self.logger.warning("frame encode failed: %s", e)
                continue
            self.submit_frame(payload)
            self._offer_image(img)

    def _tag_pump(self, producer: TagProducer) -> None:
        while not self._stop_event.is_set():
            try:
                img = self._mailbox.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                batch = producer.detect(img)
            except Exception as e:
                self.logger.warning("tag detection failed: %s", e)
                continue
            self.submit_detections(batch)

    def _build_source(self) -> FrameSource:
        if self.source is not None:
            return self.source
        return build_source(
            self.config.source,
            self.config.fps,
            self.config.width,
            self.config.height,
            dict_name=self.config.aruco_dict,
        )

    def _build_producer(self) -> TagProducer:
        if self.producer is not None:
            return self.producer
        return ArucoTagProducer(self.config.aruco_dict)

    def _build_sink(self) -> DisplaySink:
        if self.sink is not None:
            return self.sink
        if self.config.headless:
            return NullSink()
        return WindowSink(self.config.window_name)

    def run(self) -> RunSummary:
        source = self._build_source()
        producer = self._build_producer()
        self.sink = self._build_sink()

        self.logger.info("config: %s", self.config.as_dict())
        source.start()

        threads = [
            threading.Thread(target=self._frame_pump, args=(source,), name="frame-pump", daemon=True),
            threading.Thread(target=self._tag_pump, args=(producer,), name="tag-pump", daemon=True),
        ]
        for t in threads:
            t.start()

        t0 = time.time()
        try:
            while not self._stop_event.is_set():
                if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
                    break
                if self.config.max_frames and self.frames_displayed >= self.config.max_frames:
                    break
                self.spin_once(timeout=0.1)
        finally:
            self._stop_event.set()
            for t in threads:
                t.join(timeout=2.0)
            try:
                source.stop()
            finally:
                self.sink.close()

        avg = self.frames_displayed / max(1e-6, (time.time() - t0))
        self.logger.info(
            "summary frames=%d overlays=%d dropped=%d decode_failures=%d skipped=%d avg_fps=%.2f",
            self.frames_displayed,
            self.batches_rendered,
            self.batches_dropped,
            self.decode_failures,
            self.events.skipped,
            avg,
        )
        return RunSummary(
            self.frames_displayed,
            self.batches_rendered,
            self.batches_dropped,
            self.decode_failures,
            avg,
            self.compositor.overlay_halted,
            self.events.skipped,
        )
