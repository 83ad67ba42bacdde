"""Frame sources for the capture session."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Protocol

import cv2
import numpy as np

from src.pipeline.errors import SourceNotReadyError

LOGGER = logging.getLogger(__name__)

CAMERA_WIDTH = 1280
CAMERA_HEIGHT = 720


def _require_dimensions(frame: np.ndarray | None, label: str) -> np.ndarray:
    if frame is None or frame.ndim < 2 or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise SourceNotReadyError(f"{label} has no usable frame yet")
    return frame


class FrameSource(Protocol):
    def open(self) -> bool: ...

    def read(self) -> np.ndarray: ...

    def release(self) -> None: ...


class CameraSource:
    """OpenCV ``VideoCapture`` device or stream URL."""

    def __init__(
        self,
        source: int | str = 0,
        width: int = CAMERA_WIDTH,
        height: int = CAMERA_HEIGHT,
    ) -> None:
        if isinstance(source, str) and source.isdigit():
            source = int(source)
        self.source = source
        self.width = width
        self.height = height
        self.video_capture: cv2.VideoCapture | None = None

    def open(self) -> bool:
        if self.video_capture is not None and self.video_capture.isOpened():
            return True
        self.video_capture = cv2.VideoCapture(self.source)
        if not self.video_capture.isOpened():
            LOGGER.error("Failed to open camera source: %s", self.source)
            self.video_capture = None
            return False
        self.video_capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.video_capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        LOGGER.info("Camera opened: %s", self.source)
        return True

    def read(self) -> np.ndarray:
        if self.video_capture is None:
            raise SourceNotReadyError(f"camera {self.source} is not open")
        ok, frame = self.video_capture.read()
        if not ok:
            raise SourceNotReadyError(f"camera {self.source} returned no frame")
        return _require_dimensions(frame, f"camera {self.source}")

    def release(self) -> None:
        if self.video_capture is not None:
            self.video_capture.release()
            self.video_capture = None
            LOGGER.info("Camera released: %s", self.source)


class StaticFrameSource:
    """Serves in-memory frames in order; the last one repeats."""

    def __init__(self, frames: Iterable[np.ndarray | None]) -> None:
        self.frames = list(frames)
        self.index = 0
        self.opened = False
        self.released = False

    def open(self) -> bool:
        self.opened = True
        self.released = False
        return True

    def read(self) -> np.ndarray:
        if not self.opened or not self.frames:
            raise SourceNotReadyError("static source has no frames")
        frame = self.frames[min(self.index, len(self.frames) - 1)]
        self.index += 1
        return _require_dimensions(frame, "static source")

    def release(self) -> None:
        self.opened = False
        self.released = True


class ImageFileSource(StaticFrameSource):
    """A still image on disk, served on every read."""

    def __init__(self, image_path: str | Path) -> None:
        super().__init__([])
        self.image_path = Path(image_path)

    def open(self) -> bool:
        image = cv2.imread(str(self.image_path))
        if image is None:
            LOGGER.error("Failed to read image: %s", self.image_path)
            return False
        self.frames = [image]
        self.index = 0
        return super().open()
