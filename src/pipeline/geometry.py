"""Corner ordering for plate quadrilaterals."""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np


def order_points(points: Iterable[Iterable[float]]) -> np.ndarray:
    """Sort 4 corner points by angle around their centroid, top-left first.

    The first point is the one with the smallest x + y. This matches the
    top-left, top-right, bottom-right, bottom-left destination order only
    for rectangles close to axis-aligned; strongly rotated plates may start
    from a different corner.
    """
    pts = np.asarray([[float(x), float(y)] for x, y in points], dtype=np.float32)
    if pts.shape != (4, 2):
        raise ValueError(f"Expected 4 points, got {len(pts)}")

    center_x = float(pts[:, 0].mean())
    center_y = float(pts[:, 1].mean())
    by_angle = sorted(
        (tuple(point) for point in pts.tolist()),
        key=lambda point: math.atan2(point[1] - center_y, point[0] - center_x),
    )

    min_index = 0
    min_sum = math.inf
    for index, (x, y) in enumerate(by_angle):
        if x + y < min_sum:
            min_sum = x + y
            min_index = index

    ordered = by_angle[min_index:] + by_angle[:min_index]
    return np.asarray(ordered, dtype=np.float32)


def polygon_area(points: np.ndarray) -> float:
    """Absolute shoelace area of a polygon given as an (N, 2) array."""
    xs = points[:, 0].astype(np.float64)
    ys = points[:, 1].astype(np.float64)
    return 0.5 * abs(float(np.dot(xs, np.roll(ys, -1)) - np.dot(ys, np.roll(xs, -1))))


def has_coincident_points(points: np.ndarray, tolerance: float = 1e-3) -> bool:
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            if float(np.linalg.norm(points[i] - points[j])) <= tolerance:
                return True
    return False
