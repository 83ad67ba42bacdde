"""Character-zone preprocessing before OCR.

Steps: grayscale, light Gaussian blur, CLAHE, Otsu binarization, bicubic
upscale and a small morphological closing that reconnects broken strokes.
"""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig

LOGGER = logging.getLogger(__name__)

STEP_NAMES = ("gray", "blurred", "clahe", "threshold", "upscaled", "closed")


def prepare_steps(
    crop: np.ndarray,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> dict[str, np.ndarray]:
    """Run every preprocessing step and return the intermediate images."""
    if crop.size == 0:
        return {}

    gray = backend.to_gray(crop)
    blurred = backend.gaussian_blur(gray, config.ocr_blur_kernel)
    contrasted = backend.clahe(blurred, config.clahe_clip_limit, config.clahe_tile_size)
    threshold = backend.otsu_threshold(contrasted)
    upscaled = backend.resize_cubic(threshold, config.ocr_upscale)
    closed = backend.morph_close(upscaled, config.close_kernel)

    LOGGER.debug(
        "Prepared crop %dx%d -> %dx%d",
        crop.shape[1],
        crop.shape[0],
        closed.shape[1],
        closed.shape[0],
    )
    return dict(zip(STEP_NAMES, (gray, blurred, contrasted, threshold, upscaled, closed)))


def prepare_for_ocr(
    crop: np.ndarray,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> np.ndarray:
    """Return the binary, upscaled character zone handed to the OCR engine."""
    steps = prepare_steps(crop, backend, config)
    if not steps:
        return crop
    return steps["closed"]


def save_steps(steps: dict[str, np.ndarray], steps_dir: Path, prefix: str = "plate") -> list[Path]:
    """Write intermediate images as numbered PNGs for debugging."""
    steps_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for index, (name, image) in enumerate(steps.items(), start=1):
        path = steps_dir / f"{prefix}_{index}_{name}.png"
        if not cv2.imwrite(str(path), image):
            LOGGER.error("Failed to write step image: %s", path)
            continue
        written.append(path)
    return written
