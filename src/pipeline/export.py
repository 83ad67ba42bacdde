"""Export of the processed character-zone image."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)

ARTIFACT_PREFIX = "placa_processada"


def capture_timestamp(captured_at: dt.datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, safe for file names."""
    utc = captured_at.astimezone(dt.timezone.utc)
    iso = utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def artifact_name(captured_at: dt.datetime) -> str:
    return f"{ARTIFACT_PREFIX}_{capture_timestamp(captured_at)}.png"


def export_plate_image(
    image: np.ndarray,
    out_dir: Path,
    captured_at: dt.datetime,
    force: bool = True,
) -> Path | None:
    """Write the processed plate as PNG; return its path or None on failure."""
    output_path = out_dir / artifact_name(captured_at)
    if output_path.exists() and not force:
        LOGGER.error("Artifact exists, not overwriting: %s", output_path)
        return None
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.error("Cannot create output directory %s: %s", out_dir, exc)
        return None
    if not cv2.imwrite(str(output_path), image):
        LOGGER.error("Failed to write plate image: %s", output_path)
        return None
    LOGGER.info("Wrote plate image: %s", output_path)
    return output_path


def encode_png(image: np.ndarray) -> bytes:
    """PNG bytes for in-memory downloads."""
    ok, encoded = cv2.imencode(".png", image)
    if not ok:
        raise ValueError("Failed to encode image as PNG")
    return encoded.tobytes()
