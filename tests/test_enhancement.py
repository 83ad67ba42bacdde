import numpy as np

from src.pipeline.enhancement import STEP_NAMES, prepare_for_ocr, prepare_steps, save_steps


def _zone() -> np.ndarray:
    zone = np.full((54, 223, 3), 230, dtype=np.uint8)
    zone[10:44, 20:40] = 20
    zone[10:44, 60:80] = 20
    return zone


def test_prepare_for_ocr_doubles_size() -> None:
    processed = prepare_for_ocr(_zone())

    assert processed.shape == (108, 446)
    assert processed.dtype == np.uint8


def test_prepare_steps_order() -> None:
    steps = prepare_steps(_zone())
    assert tuple(steps) == STEP_NAMES
    assert set(np.unique(steps["threshold"])) <= {0, 255}


def test_prepare_empty_crop() -> None:
    empty = np.zeros((0, 0, 3), dtype=np.uint8)
    assert prepare_steps(empty) == {}
    assert prepare_for_ocr(empty).size == 0


def test_save_steps(tmp_path) -> None:
    written = save_steps(prepare_steps(_zone()), tmp_path / "steps", prefix="car")

    assert [path.name for path in written][0] == "car_1_gray.png"
    assert len(written) == len(STEP_NAMES)
    assert all(path.exists() for path in written)
