"""Plate detection: contours, scoring, rectification and cropping."""

from __future__ import annotations

import logging

import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig
from src.pipeline.contours import extract_contours
from src.pipeline.crop import crop_character_zone
from src.pipeline.errors import DegenerateGeometryError, EmptyFrameError
from src.pipeline.models import DetectionResult
from src.pipeline.rectify import rectify_plate
from src.pipeline.scoring import select_best_candidate

LOGGER = logging.getLogger(__name__)


def check_frame(frame: np.ndarray | None) -> np.ndarray:
    """Return the frame, raising EmptyFrameError if it carries no pixels."""
    if frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise EmptyFrameError("frame has no pixel data")
    return frame


def detect_plate(
    frame: np.ndarray,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> DetectionResult:
    """Run one detection cycle on a frame.

    Args:
        frame: BGR, BGRA or grayscale image.
        backend: Image-processing backend.
        config: Scanner constants.

    Returns:
        A DetectionResult; ``found`` is False when no contour passes the
        gates or the best one has degenerate geometry.

    Raises:
        EmptyFrameError: if the frame has no pixel data.
    """
    check_frame(frame)
    contours = extract_contours(frame, backend, config)
    candidate = select_best_candidate(contours, backend, config)
    if candidate is None:
        return DetectionResult(found=False, reason="no_candidate", contours=contours)

    try:
        region, plate = rectify_plate(frame, candidate.rect, backend, config)
    except DegenerateGeometryError as exc:
        LOGGER.warning("Discarding candidate (score=%.3f): %s", candidate.score, exc)
        return DetectionResult(
            found=False, candidate=candidate, reason="degenerate_geometry", contours=contours
        )

    zone = crop_character_zone(plate, backend)
    if zone.size == 0:
        LOGGER.warning("Empty character zone for plate %dx%d", plate.width, plate.height)
        return DetectionResult(
            found=False, candidate=candidate, reason="empty_crop", contours=contours
        )

    return DetectionResult(
        found=True,
        candidate=candidate,
        region=region,
        plate=plate,
        character_zone=zone,
        contours=contours,
    )
