"""Entry point for the live YOLO camera overlay."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

import cv2

from .config.settings import AppSettings, load_settings
from .controller import CameraController
from .errors import StartupError

LOGGER = logging.getLogger(__name__)

WINDOW_NAME = "YOLO Camera Overlay"
DEBUG_WINDOW_NAME = "YOLO Debug"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live YOLO object detection overlay")
    parser.add_argument("--source", type=str, default=None, help="Camera index or video path")
    parser.add_argument("--model", type=str, default=None, help="Path to YOLO weights file")
    parser.add_argument("--device", type=str, default=None, help="Inference device (auto, cpu, cuda, mps)")
    parser.add_argument("--require-acceleration", action="store_true", help="Fail instead of running on the CPU")
    parser.add_argument("--fps", type=int, default=None, help="Frames per second handed to the network")
    parser.add_argument("--conf", type=float, default=None, help="Network confidence threshold")
    parser.add_argument("--view-width", type=int, default=None, help="Display canvas width")
    parser.add_argument("--view-height", type=int, default=None, help="Display canvas height")
    parser.add_argument("--no-display", action="store_true", help="Disable OpenCV window display")
    parser.add_argument("--debug-image", action="store_true", help="Show the network input in a second window")
    parser.add_argument("--no-sprite", action="store_true", help="Hide the decorative sprite")
    parser.add_argument("--status-endpoint", type=str, default=None, help="Backend endpoint for status updates")
    parser.add_argument("--push-status", action="store_true", help="Send status updates to the endpoint")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    parser.add_argument("--max-frames", type=int, default=None, help="Stop after this many rendered results")
    return parser


def setup_logging(settings: AppSettings) -> None:
    log_level = logging.INFO
    if settings.log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=[handler], force=True)


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.source is not None:
        overrides["source"] = args.source
    if args.model:
        overrides["model_path"] = Path(args.model)
    if args.device:
        overrides["device"] = args.device
    if args.require_acceleration:
        overrides["require_acceleration"] = True
    if args.fps is not None:
        overrides["capture_fps"] = args.fps
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.view_width is not None:
        overrides["view_width"] = args.view_width
    if args.view_height is not None:
        overrides["view_height"] = args.view_height
    if args.no_display:
        overrides["display"] = False
    if args.debug_image:
        overrides["show_debug_image"] = True
    if args.no_sprite:
        overrides["show_sprite"] = False
    if args.status_endpoint:
        overrides["status_endpoint"] = args.status_endpoint
    if args.push_status:
        overrides["push_status"] = True
    if args.log_format:
        overrides["log_format"] = args.log_format

    settings = load_settings(**overrides)
    return settings


def sync_layout(controller: CameraController, window_size: Tuple[int, int]) -> bool:
    """Re-lay out the view when the window's image area changed size."""

    width, height = window_size
    if width <= 0 or height <= 0:
        return False
    bounds = controller.view_bounds
    if (int(bounds.width), int(bounds.height)) == (width, height):
        return False
    LOGGER.info("Window resized to %dx%d", width, height)
    controller.view_will_layout(width, height)
    return True


def run_overlay(
    controller: CameraController,
    settings: AppSettings,
    *,
    max_results: Optional[int] = None,
    idle_sleep: float = 0.005,
) -> None:
    """Drive the main thread until the stream ends, the user quits or ``max_results`` is hit."""

    controller.view_did_load()
    track_window = settings.display
    if settings.display:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    while True:
        controller.tick()
        if controller.setup_error is not None:
            raise controller.setup_error
        if max_results is not None and controller.results_shown >= max_results:
            LOGGER.info("Reached %d rendered results", max_results)
            break
        if controller.ready.is_set() and controller.video_capture.finished.is_set() and controller.is_idle():
            break

        if settings.display:
            canvas = controller.render()
            cv2.imshow(WINDOW_NAME, canvas)
            if settings.show_debug_image and controller.debug_image is not None:
                cv2.imshow(DEBUG_WINDOW_NAME, controller.debug_image)
            key = cv2.waitKey(1) & 0xFF
            if key in (ord("q"), 27):
                LOGGER.info("Quit signal received from keyboard")
                break
            if track_window:
                try:
                    _, _, width, height = cv2.getWindowImageRect(WINDOW_NAME)
                except cv2.error as exc:
                    LOGGER.debug("Window size unavailable, keeping a fixed layout: %s", exc)
                    track_window = False
                else:
                    sync_layout(controller, (width, height))
        else:
            time.sleep(idle_sleep)


def run_detection(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    setup_logging(settings)

    LOGGER.info("Starting camera overlay")
    controller = CameraController(settings)
    try:
        run_overlay(controller, settings, max_results=args.max_frames)
    except StartupError as exc:
        LOGGER.error("%s", exc)
        return 1
    finally:
        controller.shutdown()
        if settings.display:
            cv2.destroyAllWindows()

    LOGGER.info("Camera overlay stopped")
    return 0


def main() -> None:
    parser = build_arg_parser()
    args = parser.parse_args()

    def handle_interrupt(signum: int, frame: Optional[object]) -> None:  # pragma: no cover - signal handling
        LOGGER.warning("Received interrupt signal (%d), shutting down", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_interrupt)
    sys.exit(run_detection(args))


if __name__ == "__main__":  # pragma: no cover
    main()
