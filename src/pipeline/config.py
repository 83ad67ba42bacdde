"""Tunable constants for plate detection, cropping, OCR and scanning."""

from __future__ import annotations

import dataclasses
import json
import logging
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

LOGGER = logging.getLogger(__name__)

PLATE_WHITELIST = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class OcrConfig:
    language: str = "por"
    whitelist: str = PLATE_WHITELIST
    page_segmentation_mode: int = 7  # single text line


@dataclass(frozen=True)
class ScannerConfig:
    # edge map
    blur_kernel: int = 5
    canny_low: float = 50.0
    canny_high: float = 150.0
    canny_aperture: int = 3
    dilate_kernel: int = 3
    dilate_iterations: int = 1

    # candidate scoring
    min_contour_area: float = 1000.0
    plate_aspect_ratio: float = 3.0
    aspect_tolerance: float = 2.0
    area_normalizer: float = 10000.0
    aspect_weight: float = 0.7
    area_weight: float = 0.3
    min_score: float = 0.5

    # character zone, as fractions of the rectified plate
    white_area_height_ratio: float = 0.65
    top_margin_ratio: float = 0.25
    white_area_width_ratio: float = 0.9
    left_margin_ratio: float = 0.05

    # OCR pre-processing
    ocr_blur_kernel: int = 3
    clahe_clip_limit: float = 3.0
    clahe_tile_size: int = 8
    ocr_upscale: float = 2.0
    close_kernel: int = 2

    # session timing, in seconds
    scan_interval: float = 0.5
    settle_delay: float = 0.1

    ocr: OcrConfig = field(default_factory=OcrConfig)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ScannerConfig":
        """Build a config from a mapping, rejecting unknown keys.

        The optional ``ocr`` entry is itself a mapping of ``OcrConfig`` fields.
        """
        known = {item.name for item in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        kwargs = dict(values)
        ocr_values = kwargs.pop("ocr", None)
        if ocr_values is not None:
            ocr_known = {item.name for item in dataclasses.fields(OcrConfig)}
            ocr_unknown = sorted(set(ocr_values) - ocr_known)
            if ocr_unknown:
                raise ValueError(f"Unknown OCR config keys: {', '.join(ocr_unknown)}")
            kwargs["ocr"] = OcrConfig(**ocr_values)
        return cls(**kwargs)


DEFAULT_CONFIG = ScannerConfig()


def load_config(path: str | Path | None) -> ScannerConfig:
    """Load overrides from a JSON file; ``None`` returns the defaults."""
    if path is None:
        return DEFAULT_CONFIG
    config_path = Path(path)
    with config_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Config must be a JSON object: {config_path}")
    LOGGER.info("Loaded config overrides from %s", config_path)
    return ScannerConfig.from_mapping(payload)
