"""Smoke-test OCR by detecting a plate and reading its character zone."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

import cv2

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.pipeline.config import DEFAULT_CONFIG
from src.pipeline.detect import detect_plate
from src.pipeline.enhancement import prepare_for_ocr
from src.pipeline.errors import OcrEngineError
from src.pipeline.normalize import normalize_plate_text
from src.pipeline.ocr import ENGINES, build_engine, read_plate_text

LOGGER = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Detect a plate, rectify it, and run the OCR engine."
    )
    parser.add_argument(
        "--input_dir",
        default="data/incoming",
        help="Directory to read images from (repo-relative by default).",
    )
    parser.add_argument(
        "--engine",
        default="tesseract",
        choices=sorted(ENGINES),
        help="OCR engine.",
    )
    return parser.parse_args()


def _pick_first_image(input_dir: Path) -> Path | None:
    if not input_dir.is_dir():
        return None
    candidates = [
        path
        for path in input_dir.iterdir()
        if path.is_file() and path.suffix.lower() in {".jpg", ".jpeg", ".png"}
    ]
    if not candidates:
        return None
    return sorted(candidates, key=lambda path: path.name)[0]


def main() -> int:
    args = parse_args()
    input_dir = Path(args.input_dir)

    image_path = _pick_first_image(input_dir)
    if image_path is None:
        LOGGER.error("No images found in: %s", input_dir)
        return 2

    LOGGER.info("Reading image: %s", image_path)
    image = cv2.imread(str(image_path))
    if image is None:
        LOGGER.error("Failed to read image: %s", image_path)
        return 2

    LOGGER.info("Running detection")
    detection = detect_plate(image)
    if not detection.found:
        LOGGER.error("No plate found (%s).", detection.reason)
        return 2

    processed = prepare_for_ocr(detection.character_zone)
    try:
        raw_text = asyncio.run(
            read_plate_text(build_engine(args.engine), processed, DEFAULT_CONFIG.ocr)
        )
    except OcrEngineError as exc:
        LOGGER.error("%s", exc)
        return 2

    print(f"raw_text: {raw_text!r}")
    print(f"normalized: {normalize_plate_text(raw_text)}")
    print(f"score: {detection.candidate.score:.4f}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    raise SystemExit(main())
