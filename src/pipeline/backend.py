"""Image-processing capability set used by the pipeline.

The pipeline only talks to an ``ImageBackend``; ``OpenCVBackend`` is the
implementation used everywhere by default.
"""

from __future__ import annotations

from typing import Protocol, Sequence

import cv2
import numpy as np


class ImageBackend(Protocol):
    def to_gray(self, image: np.ndarray) -> np.ndarray: ...

    def gaussian_blur(self, image: np.ndarray, kernel: int) -> np.ndarray: ...

    def canny(
        self, image: np.ndarray, low: float, high: float, aperture: int
    ) -> np.ndarray: ...

    def dilate(self, image: np.ndarray, kernel: int, iterations: int) -> np.ndarray: ...

    def find_external_contours(self, binary: np.ndarray) -> list[np.ndarray]: ...

    def contour_area(self, contour: np.ndarray) -> float: ...

    def min_area_rect(
        self, contour: np.ndarray
    ) -> tuple[tuple[float, float], tuple[float, float], float]: ...

    def box_points(
        self, rect: tuple[tuple[float, float], tuple[float, float], float]
    ) -> np.ndarray: ...

    def perspective_transform(self, src: np.ndarray, dst: np.ndarray) -> np.ndarray: ...

    def warp_perspective(
        self, image: np.ndarray, matrix: np.ndarray, size: tuple[int, int]
    ) -> np.ndarray: ...

    def roi(self, image: np.ndarray, rect: Sequence[int]) -> np.ndarray: ...

    def otsu_threshold(self, gray: np.ndarray) -> np.ndarray: ...

    def clahe(self, gray: np.ndarray, clip_limit: float, tile_size: int) -> np.ndarray: ...

    def morph_close(self, binary: np.ndarray, kernel: int) -> np.ndarray: ...

    def resize_cubic(self, image: np.ndarray, scale: float) -> np.ndarray: ...


class OpenCVBackend:
    """``ImageBackend`` on top of ``cv2``."""

    def to_gray(self, image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image.copy()
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def gaussian_blur(self, image: np.ndarray, kernel: int) -> np.ndarray:
        return cv2.GaussianBlur(image, (kernel, kernel), 0)

    def canny(
        self, image: np.ndarray, low: float, high: float, aperture: int
    ) -> np.ndarray:
        return cv2.Canny(image, low, high, apertureSize=aperture, L2gradient=False)

    def dilate(self, image: np.ndarray, kernel: int, iterations: int) -> np.ndarray:
        element = np.ones((kernel, kernel), np.uint8)
        return cv2.dilate(image, element, iterations=iterations)

    def find_external_contours(self, binary: np.ndarray) -> list[np.ndarray]:
        contours, _hierarchy = cv2.findContours(
            binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
        )
        return list(contours)

    def contour_area(self, contour: np.ndarray) -> float:
        return float(cv2.contourArea(contour))

    def min_area_rect(
        self, contour: np.ndarray
    ) -> tuple[tuple[float, float], tuple[float, float], float]:
        (cx, cy), (width, height), angle = cv2.minAreaRect(contour)
        return (float(cx), float(cy)), (float(width), float(height)), float(angle)

    def box_points(
        self, rect: tuple[tuple[float, float], tuple[float, float], float]
    ) -> np.ndarray:
        return cv2.boxPoints(rect).astype(np.float32)

    def perspective_transform(self, src: np.ndarray, dst: np.ndarray) -> np.ndarray:
        return cv2.getPerspectiveTransform(
            np.asarray(src, dtype=np.float32), np.asarray(dst, dtype=np.float32)
        )

    def warp_perspective(
        self, image: np.ndarray, matrix: np.ndarray, size: tuple[int, int]
    ) -> np.ndarray:
        return cv2.warpPerspective(image, matrix, size)

    def roi(self, image: np.ndarray, rect: Sequence[int]) -> np.ndarray:
        x, y, width, height = (int(value) for value in rect)
        return image[y:y + height, x:x + width]

    def otsu_threshold(self, gray: np.ndarray) -> np.ndarray:
        _ret, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return binary

    def clahe(self, gray: np.ndarray, clip_limit: float, tile_size: int) -> np.ndarray:
        clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_size, tile_size))
        return clahe.apply(gray)

    def morph_close(self, binary: np.ndarray, kernel: int) -> np.ndarray:
        element = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel, kernel))
        return cv2.morphologyEx(binary, cv2.MORPH_CLOSE, element, iterations=1)

    def resize_cubic(self, image: np.ndarray, scale: float) -> np.ndarray:
        height, width = image.shape[:2]
        new_size = (int(round(width * scale)), int(round(height * scale)))
        return cv2.resize(image, new_size, interpolation=cv2.INTER_CUBIC)


DEFAULT_BACKEND = OpenCVBackend()
