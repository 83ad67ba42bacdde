import numpy as np
import pytest

from src.pipeline.backend import OpenCVBackend
from src.pipeline.contours import extract_contours
from src.pipeline.detect import detect_plate
from src.pipeline.errors import EmptyFrameError


class SingularBackend(OpenCVBackend):
    def perspective_transform(self, src: np.ndarray, dst: np.ndarray) -> np.ndarray:
        return np.zeros((3, 3), dtype=np.float64)


def test_extract_contours_finds_plate_outline(plate_frame: np.ndarray) -> None:
    contours = extract_contours(plate_frame)
    assert len(contours) == 1


def test_extract_contours_blank(blank_frame: np.ndarray) -> None:
    assert extract_contours(blank_frame) == []


def test_detect_plate_found(plate_frame: np.ndarray) -> None:
    result = detect_plate(plate_frame)

    assert result.found
    assert result.candidate.score > 0.9
    assert result.candidate.aspect_ratio == pytest.approx(3.0, abs=0.1)

    # Canny plus one dilation grows the 246x82 box by about a pixel per side
    expected = {
        246: (82, (12, 21, 221, 53)),
        247: (82, (12, 21, 222, 53)),
        248: (83, (12, 21, 223, 54)),
        249: (83, (12, 21, 224, 54)),
        250: (83, (13, 21, 225, 54)),
    }
    assert result.plate.width in expected
    height, crop = expected[result.plate.width]
    assert result.plate.height == height
    assert result.plate.crop.as_tuple() == crop
    assert result.character_zone.shape[:2] == (crop[3], crop[2])


def test_detect_plate_zone_is_plate_interior(plate_frame: np.ndarray) -> None:
    result = detect_plate(plate_frame)
    assert result.character_zone.mean() > 200


def test_detect_plate_grayscale_frame(plate_frame: np.ndarray) -> None:
    gray = plate_frame[:, :, 0].copy()
    assert detect_plate(gray).found


def test_detect_plate_not_found_on_blank(blank_frame: np.ndarray) -> None:
    result = detect_plate(blank_frame)

    assert not result.found
    assert result.reason == "no_candidate"
    assert result.candidate is None


def test_detect_plate_ignores_small_rectangles(blank_frame: np.ndarray) -> None:
    frame = blank_frame.copy()
    frame[100:112, 100:136] = 255

    assert not detect_plate(frame).found


def test_detect_plate_degenerate_geometry_is_not_fatal(plate_frame: np.ndarray) -> None:
    result = detect_plate(plate_frame, backend=SingularBackend())

    assert not result.found
    assert result.reason == "degenerate_geometry"


def test_detect_plate_empty_frame() -> None:
    with pytest.raises(EmptyFrameError):
        detect_plate(np.zeros((0, 0, 3), dtype=np.uint8))


def test_detect_plate_keeps_extracted_contours(plate_frame: np.ndarray, blank_frame: np.ndarray) -> None:
    found = detect_plate(plate_frame)
    missing = detect_plate(blank_frame)

    assert len(found.contours) == len(extract_contours(plate_frame)) == 1
    assert found.candidate.contour is found.contours[0]
    assert missing.contours == []
