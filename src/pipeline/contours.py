"""Edge-map contour extraction."""

from __future__ import annotations

import logging

import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig

LOGGER = logging.getLogger(__name__)


def edge_map(
    frame: np.ndarray,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> np.ndarray:
    """Grayscale, blur, Canny and a single dilation to bridge broken edges."""
    gray = backend.to_gray(frame)
    blurred = backend.gaussian_blur(gray, config.blur_kernel)
    edges = backend.canny(
        blurred, config.canny_low, config.canny_high, config.canny_aperture
    )
    return backend.dilate(edges, config.dilate_kernel, config.dilate_iterations)


def extract_contours(
    frame: np.ndarray,
    backend: ImageBackend = DEFAULT_BACKEND,
    config: ScannerConfig = DEFAULT_CONFIG,
) -> list[np.ndarray]:
    """Return the outer contours of the frame's edge map (possibly empty)."""
    dilated = edge_map(frame, backend, config)
    contours = backend.find_external_contours(dilated)
    LOGGER.debug("Extracted %d contour(s)", len(contours))
    return contours
