#!/usr/bin/env python3
"""Download YOLO weights used by the camera overlay."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

import requests

LOGGER = logging.getLogger(__name__)

MODEL_URLS = {
    "n": "https://github.com/ultralytics/assets/releases/download/v8.2.0/yolov8n.pt",
    "s": "https://github.com/ultralytics/assets/releases/download/v8.2.0/yolov8s.pt",
    "m": "https://github.com/ultralytics/assets/releases/download/v8.2.0/yolov8m.pt",
}


def download_weights(url: str, target: Path, chunk_size: int = 1 << 20) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_suffix(target.suffix + ".part")
    with requests.get(url, timeout=60, stream=True) as response:
        response.raise_for_status()
        try:
            with partial.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    handle.write(chunk)
        except (requests.RequestException, OSError):
            partial.unlink(missing_ok=True)
            raise
    partial.replace(target)
    LOGGER.info("Model weights downloaded to %s", target)
    return target


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download YOLO weights")
    parser.add_argument("--variant", choices=MODEL_URLS.keys(), default="n", help="YOLOv8 variant to download")
    parser.add_argument("--url", type=str, default=None, help="Model weights URL override")
    parser.add_argument("--output", type=Path, default=None, help="Destination path")
    return parser.parse_args()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    args = parse_args()
    url = args.url or MODEL_URLS[args.variant]
    target = args.output or Path("models") / Path(url).name
    download_weights(url, target)


if __name__ == "__main__":
    main()
