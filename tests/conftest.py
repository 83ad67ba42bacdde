import cv2
import numpy as np
import pytest

PLATE_X, PLATE_Y = 150, 200
PLATE_W, PLATE_H = 246, 82


@pytest.fixture
def blank_frame() -> np.ndarray:
    return np.full((480, 640, 3), 40, dtype=np.uint8)


@pytest.fixture
def plate_frame(blank_frame: np.ndarray) -> np.ndarray:
    # one axis-aligned 3:1 white rectangle, area ~20000
    frame = blank_frame.copy()
    cv2.rectangle(
        frame,
        (PLATE_X, PLATE_Y),
        (PLATE_X + PLATE_W - 1, PLATE_Y + PLATE_H - 1),
        (255, 255, 255),
        thickness=-1,
    )
    return frame
