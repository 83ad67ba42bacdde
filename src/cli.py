"""CLI entrypoints for the plate scanner."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

import cv2

from src.pipeline.config import ScannerConfig, load_config
from src.pipeline.enhancement import prepare_steps, save_steps
from src.pipeline.models import ScanResult
from src.pipeline.normalize import normalize_plate_text, plate_format
from src.pipeline.ocr import ENGINES, build_engine
from src.pipeline.session import CaptureSession, scan_until_plate
from src.pipeline.sources import CameraSource, FrameSource, ImageFileSource
from src.pipeline.visualize import draw_contours, draw_crop_rect, draw_plate_quad

LOGGER = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Plate scanner CLI.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Detect, rectify and read the plate in a still image.",
    )
    scan_parser.add_argument(
        "--input",
        required=True,
        help="Image file to scan.",
    )
    _add_session_args(scan_parser)
    scan_parser.add_argument(
        "--debug_dir",
        default=None,
        help="Directory for contour, plate and preprocessing debug images.",
    )
    scan_parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for OCR before giving up.",
    )

    watch_parser = subparsers.add_parser(
        "watch",
        help="Scan a live camera until a plate is read.",
    )
    watch_parser.add_argument(
        "--camera",
        default="0",
        help="Camera index or stream URL.",
    )
    _add_session_args(watch_parser)
    watch_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for a plate (default: no limit).",
    )

    normalize_parser = subparsers.add_parser(
        "normalize",
        help="Normalize raw OCR text into plate codes.",
    )
    normalize_parser.add_argument("text", nargs="+", help="Raw OCR text.")

    return parser.parse_args(argv)


def _add_session_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--out_dir",
        default="data/plates",
        help="Directory for processed plate images (repo-relative by default).",
    )
    parser.add_argument(
        "--engine",
        default="tesseract",
        choices=sorted(ENGINES),
        help="OCR engine.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON file with scanner constant overrides.",
    )


def _load_config(args: argparse.Namespace) -> ScannerConfig | None:
    try:
        return load_config(args.config)
    except (OSError, ValueError, TypeError) as exc:
        LOGGER.error("Invalid config %s: %s", args.config, exc)
        return None


def _report(result: ScanResult | None) -> int:
    if result is None:
        LOGGER.error("No plate read before timeout.")
        return 2
    if not result.ok:
        LOGGER.error("%s", result.error)
        return 2
    payload = {
        "plate": result.plate_text,
        "format": plate_format(result.plate_text),
        "raw_text": result.raw_text,
        "captured_at": result.captured_at.isoformat(),
        "artifact": str(result.artifact_path) if result.artifact_path else None,
    }
    print(json.dumps(payload, ensure_ascii=True))
    if not result.plate_text:
        LOGGER.warning("No text recognized on plate.")
    return 0


def _write_debug(session: CaptureSession, image_path: Path, debug_dir: Path) -> None:
    detection = session.last_detection
    image = cv2.imread(str(image_path))
    if image is None or detection is None:
        return
    debug_dir.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(
        str(debug_dir / f"{image_path.stem}_contours.jpg"),
        draw_contours(image, detection.contours),
    )
    if not detection.found:
        LOGGER.info("No plate in %s (%s)", image_path, detection.reason)
        return
    cv2.imwrite(
        str(debug_dir / f"{image_path.stem}_plate.jpg"),
        draw_plate_quad(image, detection.region.corners),
    )
    cv2.imwrite(
        str(debug_dir / f"{image_path.stem}_rectified.jpg"),
        draw_crop_rect(detection.plate.image, detection.plate.crop.as_tuple()),
    )
    steps = prepare_steps(detection.character_zone, session.backend, session.config)
    save_steps(steps, debug_dir / "steps", prefix=image_path.stem)
    LOGGER.info("Wrote debug images to: %s", debug_dir)


async def _scan_image(
    image_path: Path,
    args: argparse.Namespace,
    config: ScannerConfig,
) -> int:
    source = ImageFileSource(image_path)
    session = CaptureSession(
        source=source,
        engine=build_engine(args.engine),
        config=config,
        export_dir=Path(args.out_dir),
    )
    if not session.start():
        return 2
    try:
        # A still image never changes, so one detection decides the outcome.
        if not session.tick():
            detection = session.last_detection
            reason = detection.reason if detection is not None else "source_not_ready"
            LOGGER.error("No plate found in %s (%s)", image_path, reason)
            if args.debug_dir:
                _write_debug(session, image_path, Path(args.debug_dir))
            return 2
        if args.debug_dir:
            _write_debug(session, image_path, Path(args.debug_dir))
        result = await session.wait_for_result(args.timeout)
    finally:
        session.stop()
    return _report(result)


def _run_scan(args: argparse.Namespace) -> int:
    image_path = Path(args.input)
    if not image_path.is_file():
        LOGGER.error("Image not found: %s", image_path)
        return 2
    config = _load_config(args)
    if config is None:
        return 2
    return asyncio.run(_scan_image(image_path, args, config))


def _run_watch(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if config is None:
        return 2
    source: FrameSource = CameraSource(args.camera)
    session = CaptureSession(
        source=source,
        engine=build_engine(args.engine),
        config=config,
        export_dir=Path(args.out_dir),
    )
    try:
        result = asyncio.run(scan_until_plate(session, timeout=args.timeout))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted.")
        session.stop()
        return 130
    return _report(result)


def _run_normalize(args: argparse.Namespace) -> int:
    for text in args.text:
        print(normalize_plate_text(text))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    if args.command == "scan":
        return _run_scan(args)
    if args.command == "watch":
        return _run_watch(args)
    if args.command == "normalize":
        return _run_normalize(args)
    LOGGER.error("Unknown command: %s", args.command)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
