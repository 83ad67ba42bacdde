import numpy as np
import pytest

from src.pipeline.backend import OpenCVBackend
from src.pipeline.errors import DegenerateGeometryError
from src.pipeline.models import RotatedRect
from src.pipeline.rectify import plate_region, rectify_plate


class SingularBackend(OpenCVBackend):
    def perspective_transform(self, src: np.ndarray, dst: np.ndarray) -> np.ndarray:
        return np.zeros((3, 3), dtype=np.float64)


def _frame_with_plate() -> np.ndarray:
    frame = np.zeros((300, 400, 3), dtype=np.uint8)
    frame[100:160, 50:230] = 255
    return frame


def test_rectify_forces_plate_aspect_ratio() -> None:
    # measured height 70 is replaced by 180 / 3
    rect = RotatedRect(center=(140.0, 130.0), size=(180.0, 70.0), angle=0.0)

    region, plate = rectify_plate(_frame_with_plate(), rect)

    assert (region.width, region.height) == (180, 60)
    assert plate.image.shape[:2] == (60, 180)
    assert plate.crop.as_tuple() == (9, 15, 162, 39)


def test_rectify_uses_long_side_when_rect_is_portrait() -> None:
    rect = RotatedRect(center=(140.0, 130.0), size=(60.0, 180.0), angle=90.0)

    region, plate = rectify_plate(_frame_with_plate(), rect)

    assert (plate.width, plate.height) == (180, 60)
    assert region.corners.shape == (4, 2)


def test_rectify_maps_plate_to_frontal_view() -> None:
    rect = RotatedRect(center=(139.5, 129.5), size=(180.0, 60.0), angle=0.0)

    _region, plate = rectify_plate(_frame_with_plate(), rect)

    inner = plate.image[5:-5, 5:-5]
    assert inner.mean() > 250


def test_degenerate_rect_raises() -> None:
    with pytest.raises(DegenerateGeometryError):
        plate_region(RotatedRect(center=(10.0, 10.0), size=(0.0, 0.0), angle=0.0))
    with pytest.raises(DegenerateGeometryError):
        plate_region(RotatedRect(center=(10.0, 10.0), size=(120.0, 0.0), angle=0.0))


def test_singular_homography_raises() -> None:
    rect = RotatedRect(center=(140.0, 130.0), size=(180.0, 60.0), angle=0.0)

    with pytest.raises(DegenerateGeometryError):
        rectify_plate(_frame_with_plate(), rect, backend=SingularBackend())
