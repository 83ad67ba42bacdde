"""Perspective rectification of a plate candidate.

The rotated rectangle's corners are mapped onto an axis-aligned plate whose
height is forced to ``width / plate_aspect_ratio``; the measured height is
discarded.
"""

from __future__ import annotations

import logging

import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig
from src.pipeline.crop import compute_crop_rect, round_half_up, validate_crop_rect
from src.pipeline.errors import DegenerateGeometryError
from src.pipeline.geometry import has_coincident_points, order_points, polygon_area
from src.pipeline.models import PlateRegion, RectifiedPlate, RotatedRect

LOGGER = logging.getLogger(__name__)

MIN_QUAD_AREA = 1.0
MIN_DETERMINANT = 1e-12


def plate_dimensions(
    rect: RotatedRect,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> tuple[float, float]:
    plate_width = rect.long_side
    plate_height = plate_width / config.plate_aspect_ratio
    return plate_width, plate_height


def destination_quad(plate_width: float, plate_height: float) -> np.ndarray:
    return np.array(
        [
            [0.0, 0.0],
            [plate_width - 1, 0.0],
            [plate_width - 1, plate_height - 1],
            [0.0, plate_height - 1],
        ],
        dtype=np.float32,
    )


def _check_homography(matrix: np.ndarray | None) -> None:
    if matrix is None or matrix.shape != (3, 3):
        raise DegenerateGeometryError("homography is missing")
    if not np.all(np.isfinite(matrix)):
        raise DegenerateGeometryError("homography has non-finite entries")
    if abs(float(np.linalg.det(matrix))) < MIN_DETERMINANT:
        raise DegenerateGeometryError("homography is singular")


def plate_region(
    rect: RotatedRect,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> PlateRegion:
    """Order the rectangle's corners and size the rectified plate."""
    corners = order_points(backend.box_points(rect.as_cv()))
    if has_coincident_points(corners):
        raise DegenerateGeometryError("coincident corners")
    if polygon_area(corners) < MIN_QUAD_AREA:
        raise DegenerateGeometryError("zero-area quadrilateral")

    plate_width, plate_height = plate_dimensions(rect, config)
    width = round_half_up(plate_width)
    height = round_half_up(plate_height)
    if width < 1 or height < 1:
        raise DegenerateGeometryError(f"rectified size {width}x{height} is empty")
    return PlateRegion(corners=corners, width=width, height=height)


def rectify_plate(
    frame: np.ndarray,
    rect: RotatedRect,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> tuple[PlateRegion, RectifiedPlate]:
    """Warp the candidate to a frontal plate and locate its character zone.

    Raises:
        DegenerateGeometryError: if the corners cannot define a homography.
    """
    region = plate_region(rect, backend, config)
    plate_width, plate_height = plate_dimensions(rect, config)

    matrix = backend.perspective_transform(
        region.corners, destination_quad(plate_width, plate_height)
    )
    _check_homography(matrix)

    warped = backend.warp_perspective(frame, matrix, (region.width, region.height))
    crop = compute_crop_rect(region.width, region.height, config)
    ok, reason = validate_crop_rect(crop, warped.shape)
    if not ok:
        raise DegenerateGeometryError(f"character zone {reason}")
    if reason == "clipped":
        LOGGER.debug("Character zone clipped to plate bounds: %s", crop)

    LOGGER.debug("Rectified plate %dx%d, crop=%s", region.width, region.height, crop)
    return region, RectifiedPlate(image=warped, crop=crop)
