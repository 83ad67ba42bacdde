"""Plate-likeness scoring for contours.

A contour is scored on how close its minimum-area rectangle is to the plate
aspect ratio (70%) and on its area (30%). The best contour above the score
threshold wins; ties keep the first contour seen.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig
from src.pipeline.models import Candidate, RotatedRect

LOGGER = logging.getLogger(__name__)


def aspect_ratio(size: tuple[float, float]) -> float:
    """Long side over short side; ``inf`` for a collapsed rectangle."""
    long_side, short_side = max(size), min(size)
    if short_side <= 0:
        return math.inf
    return long_side / short_side


def plate_score(
    ratio: float,
    area: float,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> float:
    aspect_score = max(
        0.0, 1.0 - abs(ratio - config.plate_aspect_ratio) / config.aspect_tolerance
    )
    area_score = min(area / config.area_normalizer, 1.0)
    return config.aspect_weight * aspect_score + config.area_weight * area_score


def score_contour(
    contour: np.ndarray,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> Candidate | None:
    """Score one contour, or return None when it fails the area gate."""
    area = backend.contour_area(contour)
    if area < config.min_contour_area:
        return None

    center, size, angle = backend.min_area_rect(contour)
    rect = RotatedRect(center=center, size=size, angle=angle)
    ratio = aspect_ratio(size)
    score = plate_score(ratio, area, config)
    return Candidate(
        contour=contour,
        area=area,
        rect=rect,
        aspect_ratio=ratio,
        score=score,
    )


def select_best_candidate(
    contours: Iterable[np.ndarray],
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> Candidate | None:
    """Single pass over the contours keeping the highest-scoring plate."""
    best: Candidate | None = None
    max_score = 0.0
    scored = 0

    for contour in contours:
        candidate = score_contour(contour, backend, config)
        if candidate is None:
            continue
        scored += 1
        if candidate.score > max_score and candidate.score > config.min_score:
            max_score = candidate.score
            best = candidate

    if best is None:
        LOGGER.debug("No candidate above threshold (%d scored)", scored)
    else:
        LOGGER.debug(
            "Best candidate: score=%.3f aspect=%.2f area=%.0f",
            best.score,
            best.aspect_ratio,
            best.area,
        )
    return best
