"""Records passed between the pipeline stages."""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np


@dataclass(frozen=True)
class RotatedRect:
    center: tuple[float, float]
    size: tuple[float, float]
    angle: float

    @property
    def long_side(self) -> float:
        return max(self.size)

    @property
    def short_side(self) -> float:
        return min(self.size)

    def as_cv(self) -> tuple[tuple[float, float], tuple[float, float], float]:
        return self.center, self.size, self.angle


@dataclass(frozen=True)
class Candidate:
    """A contour that passed the area gate, with its plate-likeness score."""

    contour: np.ndarray
    area: float
    rect: RotatedRect
    aspect_ratio: float
    score: float


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height


@dataclass(frozen=True)
class PlateRegion:
    corners: np.ndarray  # 4x2 float32, canonical winding
    width: int
    height: int


@dataclass(frozen=True)
class RectifiedPlate:
    image: np.ndarray
    crop: CropRect

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass(frozen=True)
class DetectionResult:
    found: bool
    candidate: Candidate | None = None
    region: PlateRegion | None = None
    plate: RectifiedPlate | None = None
    character_zone: np.ndarray | None = None
    reason: str = ""
    contours: list[np.ndarray] = field(default_factory=list)


class SessionState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    LOCKED = "locked"
    PROCESSING = "processing"
    DONE = "done"


@dataclass(frozen=True)
class ScanResult:
    """Terminal outcome of one locked capture."""

    plate_text: str
    raw_text: str
    generation: int
    captured_at: dt.datetime
    processed_image: np.ndarray | None = None
    artifact_path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
