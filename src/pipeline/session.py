"""Capture session: continuous scanning, frame locking, OCR and reset.

State machine::

    IDLE -> SCANNING <-> LOCKED -> PROCESSING -> DONE
    DONE -> SCANNING (reset), any state -> IDLE (stop)

Everything runs on one asyncio event loop. The periodic scan task and the
OCR job are the only suspension points. Each start, reset and stop bumps
``generation``; an OCR job that wakes up with an old generation drops its
result instead of touching the session.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from pathlib import Path
from typing import Callable

import numpy as np

from src.pipeline.backend import DEFAULT_BACKEND, ImageBackend
from src.pipeline.config import DEFAULT_CONFIG, ScannerConfig
from src.pipeline.crop import crop_character_zone
from src.pipeline.detect import detect_plate
from src.pipeline.enhancement import prepare_for_ocr
from src.pipeline.errors import (
    EmptyFrameError,
    OcrEngineError,
    PlateScanError,
    SourceNotReadyError,
)
from src.pipeline.export import export_plate_image
from src.pipeline.models import DetectionResult, RotatedRect, ScanResult, SessionState
from src.pipeline.normalize import normalize_plate_text
from src.pipeline.ocr import OcrEngine, read_plate_text
from src.pipeline.rectify import rectify_plate
from src.pipeline.sources import FrameSource

LOGGER = logging.getLogger(__name__)

STATUS_MESSAGES = {
    SessionState.IDLE: "Camera stopped",
    SessionState.SCANNING: "Searching for plate...",
    SessionState.LOCKED: "Plate detected! Processing captured frame...",
    SessionState.PROCESSING: "Running OCR on plate...",
    SessionState.DONE: "Plate processed",
}


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class CaptureSession:
    """Owns the scan timer, the locked frame and the in-flight OCR job."""

    def __init__(
        self,
        source: FrameSource,
        engine: OcrEngine,
        config: ScannerConfig = DEFAULT_CONFIG,
        backend: ImageBackend = DEFAULT_BACKEND,
        export_dir: Path | None = None,
        on_state_change: Callable[[SessionState], None] | None = None,
        on_result: Callable[[ScanResult], None] | None = None,
    ) -> None:
        self.source = source
        self.engine = engine
        self.config = config
        self.backend = backend
        self.export_dir = export_dir
        self.on_state_change = on_state_change
        self.on_result = on_result

        self.result: ScanResult | None = None
        self.last_detection: DetectionResult | None = None

        self._state = SessionState.IDLE
        self._generation = 0
        self._scan_task: asyncio.Task | None = None
        self._ocr_task: asyncio.Task | None = None
        self._locked_frame: np.ndarray | None = None
        self._locked_rect: RotatedRect | None = None
        self._captured_at: dt.datetime | None = None
        self._done = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def locked_frame(self) -> np.ndarray | None:
        return self._locked_frame

    @property
    def is_scanning(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    # -- controls -----------------------------------------------------------

    def start(self) -> bool:
        """Open the source and begin periodic scanning (needs a running loop)."""
        if not self.source.open():
            LOGGER.error("Frame source could not be opened")
            return False
        self._cancel_ocr()
        self._release_locked_frame()
        self._begin_scanning()
        return True

    def reset(self) -> bool:
        """Discard the finished capture and scan for a new plate."""
        if self._state is not SessionState.DONE:
            LOGGER.warning("Reset ignored while %s", self._state.value)
            return False
        self._release_locked_frame()
        self._begin_scanning()
        return True

    def stop(self) -> None:
        """Stop scanning, drop the locked frame and release the source.

        An OCR call already running in its worker thread is not interrupted;
        its result is discarded when it arrives. Pending ``wait_for_result``
        calls return the last result, or None if none was published.
        """
        self._generation += 1
        self._cancel_scan()
        self._cancel_ocr()
        self._release_locked_frame()
        self.source.release()
        self._set_state(SessionState.IDLE)
        self._done.set()

    async def wait_for_result(self, timeout: float | None = None) -> ScanResult | None:
        """Wait until the session reaches DONE or is stopped; None on timeout."""
        try:
            await asyncio.wait_for(self._done.wait(), timeout)
        except asyncio.TimeoutError:
            return None
        return self.result

    # -- scanning -----------------------------------------------------------

    def _begin_scanning(self) -> None:
        self._generation += 1
        self.result = None
        self._done.clear()
        self._set_state(SessionState.SCANNING)
        self._cancel_scan()
        loop = asyncio.get_running_loop()
        self._scan_task = loop.create_task(self._scan_loop(self._generation))

    async def _scan_loop(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.config.scan_interval)
            if self._state is not SessionState.SCANNING or self._generation != generation:
                break
            try:
                self.tick()
            except Exception:
                LOGGER.exception("Scan cycle failed")

    def tick(self) -> bool:
        """Run one detection cycle; returns True when a plate was locked."""
        if self._state is not SessionState.SCANNING:
            LOGGER.debug("Ignoring tick while %s", self._state.value)
            return False

        generation = self._generation
        try:
            frame = self.source.read()
            detection = detect_plate(frame, self.backend, self.config)
        except SourceNotReadyError as exc:
            LOGGER.debug("Skipping cycle: %s", exc)
            return False
        except EmptyFrameError as exc:
            LOGGER.warning("Skipping cycle: %s", exc)
            return False

        self.last_detection = detection
        if not detection.found:
            return False

        self._lock(frame, detection, generation)
        return True

    def _lock(self, frame: np.ndarray, detection: DetectionResult, generation: int) -> None:
        self._cancel_scan()
        self._locked_frame = frame.copy()
        self._locked_rect = detection.candidate.rect
        self._captured_at = dt.datetime.now(tz=dt.timezone.utc)
        self._set_state(SessionState.LOCKED)
        loop = asyncio.get_running_loop()
        self._ocr_task = loop.create_task(self._process_locked(generation))

    # -- OCR job ------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _process_locked(self, generation: int) -> None:
        await asyncio.sleep(self.config.settle_delay)
        if not self._is_current(generation) or self._state is not SessionState.LOCKED:
            LOGGER.debug("Locked frame from generation %d is stale", generation)
            return

        self._set_state(SessionState.PROCESSING)
        captured_at = self._captured_at or dt.datetime.now(tz=dt.timezone.utc)
        processed: np.ndarray | None = None
        artifact_path: Path | None = None
        try:
            _region, plate = rectify_plate(
                self._locked_frame, self._locked_rect, self.backend, self.config
            )
            zone = crop_character_zone(plate, self.backend)
            processed = prepare_for_ocr(zone, self.backend, self.config)
            if self.export_dir is not None:
                artifact_path = export_plate_image(processed, self.export_dir, captured_at)
            raw_text = await read_plate_text(self.engine, processed, self.config.ocr)
        except OcrEngineError as exc:
            LOGGER.error("OCR failed: %s", exc)
            self._fail(generation, captured_at, exc, processed, artifact_path)
            return
        except PlateScanError as exc:
            LOGGER.error("Plate processing failed: %s", exc)
            self._fail(generation, captured_at, exc, processed, artifact_path)
            return
        except Exception as exc:
            LOGGER.exception("Unexpected error while processing plate")
            self._fail(generation, captured_at, exc, processed, artifact_path)
            return

        if not self._is_current(generation):
            LOGGER.info("Discarding late OCR result for generation %d", generation)
            return

        plate_text = normalize_plate_text(raw_text)
        LOGGER.info("Recognized plate: %s", plate_text or "<none>")
        self._finish(
            ScanResult(
                plate_text=plate_text,
                raw_text=raw_text,
                generation=generation,
                captured_at=captured_at,
                processed_image=processed,
                artifact_path=artifact_path,
            )
        )

    def _fail(
        self,
        generation: int,
        captured_at: dt.datetime,
        exc: Exception,
        processed: np.ndarray | None,
        artifact_path: Path | None,
    ) -> None:
        if not self._is_current(generation):
            LOGGER.info("Dropping failure from stale generation %d: %s", generation, exc)
            return
        self._finish(
            ScanResult(
                plate_text="",
                raw_text="",
                generation=generation,
                captured_at=captured_at,
                processed_image=processed,
                artifact_path=artifact_path,
                error=f"Plate processing error: {exc}",
            )
        )

    def _finish(self, result: ScanResult) -> None:
        self._release_locked_frame()
        self._ocr_task = None
        self.result = result
        self._set_state(SessionState.DONE)
        if self.on_result is not None:
            self.on_result(result)
        self._done.set()

    # -- bookkeeping --------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        LOGGER.debug("Session %s -> %s", self._state.value, state.value)
        self._state = state
        LOGGER.info(STATUS_MESSAGES[state])
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _cancel_scan(self) -> None:
        task = self._scan_task
        self._scan_task = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def _cancel_ocr(self) -> None:
        task = self._ocr_task
        self._ocr_task = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def _release_locked_frame(self) -> None:
        if self._locked_frame is not None:
            LOGGER.debug("Releasing locked frame")
        self._locked_frame = None
        self._locked_rect = None
        self._captured_at = None


async def scan_until_plate(
    session: CaptureSession,
    timeout: float | None = None,
) -> ScanResult | None:
    """Start the session, wait for one processed plate, then stop."""
    if not session.start():
        return None
    try:
        return await session.wait_for_result(timeout)
    finally:
        session.stop()
