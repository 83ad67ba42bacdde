"""Character-zone cropping for rectified plates."""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig
from src.pipeline.models import CropRect, RectifiedPlate


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def compute_crop_rect(
    plate_width: float,
    plate_height: float,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> CropRect:
    """Return the character zone of a plate using the fixed margin ratios."""
    return CropRect(
        x=round_half_up(plate_width * config.left_margin_ratio),
        y=round_half_up(plate_height * config.top_margin_ratio),
        width=round_half_up(plate_width * config.white_area_width_ratio),
        height=round_half_up(plate_height * config.white_area_height_ratio),
    )


def validate_crop_rect(
    rect: CropRect,
    image_shape: Iterable[int],
    min_size: int = 1,
) -> tuple[bool, str]:
    """Validate a crop rectangle against image bounds and a minimum size."""
    shape = tuple(image_shape)
    height, width = int(shape[0]), int(shape[1])

    if rect.width < min_size or rect.height < min_size:
        return False, "too_small"

    if rect.x >= width or rect.y >= height or rect.x < 0 or rect.y < 0:
        return False, "out_of_bounds"

    if rect.x + rect.width > width or rect.y + rect.height > height:
        return True, "clipped"

    return True, "ok"


def crop_character_zone(
    plate: RectifiedPlate,
    backend: ImageBackend = DEFAULT_BACKEND,
) -> np.ndarray:
    """Return the character-bearing region of a rectified plate."""
    return backend.roi(plate.image, plate.crop.as_tuple())
