import argparse
import signal
import sys

from .config import VizConfig, check_alpha, load_config
from .worker import OverlayWorker


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Overlay tag detections on a live camera feed")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--node-name")
    ap.add_argument("--overlay-mode", help="axes | tri")
    ap.add_argument("--alpha", type=float, help="Overlay blend factor in [0, 1]")
    ap.add_argument("--window-name")
    ap.add_argument("--device")
    ap.add_argument("--video", help="Play back a video file instead of a camera")
    ap.add_argument("--loop", action="store_true", help="Loop the video file")
    ap.add_argument("--synthetic", action="store_true", help="Use generated frames")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--dict")
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--max-pending", type=int, help="Pending events kept per kind before the oldest is dropped")
    ap.add_argument("--duration", type=float)
    ap.add_argument("--headless", action="store_true")
    ap.add_argument("--log-level")

    return ap


def _apply_args(cfg: VizConfig, args: argparse.Namespace) -> VizConfig:
    if args.alpha is not None:
        check_alpha(args.alpha)

    cfg.apply_overrides(
        node_name=args.node_name,
        overlay_mode=args.overlay_mode,
        alpha=args.alpha,
        window_name=args.window_name,
        fps=args.fps,
        width=args.width,
        height=args.height,
        aruco_dict=args.dict,
        max_frames=args.max_frames,
        max_pending=args.max_pending,
        duration_sec=args.duration,
        headless=True if args.headless else None,
        log_level=args.log_level.upper() if args.log_level else None,
    )

    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)
    if device is not None:
        cfg.source.type = "v4l2"
        cfg.source.device = device
    if args.video:
        cfg.source.type = "file"
        cfg.source.path = args.video
        cfg.source.loop = args.loop
    if args.synthetic:
        cfg.source.type = "synthetic"
    return cfg


def main() -> int:
    ap = _build_parser()
    args = ap.parse_args()

    cfg = load_config(args.config) if args.config else VizConfig()
    cfg = _apply_args(cfg, args)

    worker = OverlayWorker(cfg)

    def _handle_signal(_sig, _frame):
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    summary = worker.run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
