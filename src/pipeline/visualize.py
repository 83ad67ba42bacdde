"""Visual debugging helpers for plate detection."""

from __future__ import annotations

from typing import Iterable

import cv2
import numpy as np

CONTOUR_COLOR = (0, 255, 0)
PLATE_COLOR = (255, 0, 0)
CROP_COLOR = (0, 0, 255)
TEXT_SCALE = 0.8
TEXT_THICKNESS = 2
LINE_THICKNESS = 2


def _to_bgr(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def draw_contours(image: np.ndarray, contours: Iterable[np.ndarray]) -> np.ndarray:
    """Draw every extracted contour on a copy of the image."""
    annotated = _to_bgr(image)
    cv2.drawContours(annotated, list(contours), -1, CONTOUR_COLOR, LINE_THICKNESS)
    return annotated


def draw_plate_quad(
    image: np.ndarray,
    corners: np.ndarray,
    label: str | None = None,
) -> np.ndarray:
    """Draw the ordered plate corners as a closed polygon, with an optional label."""
    annotated = _to_bgr(image)
    points = np.round(corners).astype(np.int32)
    for index in range(len(points)):
        start = tuple(int(v) for v in points[index])
        end = tuple(int(v) for v in points[(index + 1) % len(points)])
        cv2.line(annotated, start, end, PLATE_COLOR, LINE_THICKNESS)

    if label:
        x_min = int(points[:, 0].min())
        y_min = int(points[:, 1].min())
        cv2.putText(
            annotated,
            label,
            (x_min, max(0, y_min - 8)),
            cv2.FONT_HERSHEY_SIMPLEX,
            TEXT_SCALE,
            PLATE_COLOR,
            TEXT_THICKNESS,
            lineType=cv2.LINE_AA,
        )
    return annotated


def draw_crop_rect(plate_image: np.ndarray, rect: tuple[int, int, int, int]) -> np.ndarray:
    annotated = _to_bgr(plate_image)
    x, y, width, height = rect
    cv2.rectangle(annotated, (x, y), (x + width - 1, y + height - 1), CROP_COLOR, 1)
    return annotated
