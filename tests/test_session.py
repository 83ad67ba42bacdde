import asyncio
import dataclasses
import logging

import numpy as np

from src.pipeline.config import DEFAULT_CONFIG
from src.pipeline.errors import OcrEngineError
from src.pipeline.models import SessionState
from src.pipeline.session import CaptureSession, scan_until_plate
from src.pipeline.sources import StaticFrameSource


class FakeEngine:
    name = "fake"

    def __init__(self, text: str = "BRASIL ABC1D23", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[int, ...]] = []

    async def recognize(self, image, config) -> str:
        self.calls.append(image.shape)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.text


def _config(**overrides):
    values = {"scan_interval": 10.0, "settle_delay": 0.01}
    values.update(overrides)
    return dataclasses.replace(DEFAULT_CONFIG, **values)


async def _wait_for_state(session: CaptureSession, state: SessionState) -> None:
    for _ in range(500):
        if session.state is state:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"session never reached {state}")


def test_candidate_locks_frame_and_stops_scanning(plate_frame: np.ndarray) -> None:
    async def scenario():
        engine = FakeEngine()
        session = CaptureSession(StaticFrameSource([plate_frame]), engine, config=_config())

        assert session.start()
        assert session.state is SessionState.SCANNING
        assert session.is_scanning

        assert session.tick()
        assert session.state is SessionState.LOCKED
        assert not session.is_scanning
        assert session.locked_frame is not None
        assert session.locked_frame is not plate_frame

        # a reentrant tick must not start a second OCR cycle
        assert not session.tick()

        result = await session.wait_for_result(timeout=5)
        assert session.state is SessionState.DONE
        assert session.locked_frame is None
        session.stop()
        return engine, result

    engine, result = asyncio.run(scenario())

    assert result is not None
    assert result.ok
    assert result.plate_text == "ABC1D23"
    assert result.raw_text == "BRASIL ABC1D23"
    assert len(engine.calls) == 1


def test_periodic_scan_skips_unready_and_plateless_frames(
    plate_frame: np.ndarray, blank_frame: np.ndarray
) -> None:
    source = StaticFrameSource([None, blank_frame, plate_frame])
    states: list[SessionState] = []

    async def scenario():
        session = CaptureSession(
            source,
            FakeEngine("ABC1234"),
            config=_config(scan_interval=0.01),
            on_state_change=states.append,
        )
        return await scan_until_plate(session, timeout=5), session

    result, session = asyncio.run(scenario())

    assert result is not None
    assert result.plate_text == "ABC1234"
    assert source.index >= 3
    assert states == [
        SessionState.SCANNING,
        SessionState.LOCKED,
        SessionState.PROCESSING,
        SessionState.DONE,
        SessionState.IDLE,
    ]
    assert session.state is SessionState.IDLE
    assert source.released


def test_stop_while_locked_releases_everything(plate_frame: np.ndarray) -> None:
    source = StaticFrameSource([plate_frame])
    engine = FakeEngine()

    async def scenario():
        session = CaptureSession(source, engine, config=_config(settle_delay=0.05))
        session.start()
        generation = session.generation
        assert session.tick()

        session.stop()
        assert session.state is SessionState.IDLE
        assert session.locked_frame is None
        assert session.generation > generation

        await asyncio.sleep(0.1)
        return session

    session = asyncio.run(scenario())

    assert session.state is SessionState.IDLE
    assert session.result is None
    assert engine.calls == []
    assert source.released


def test_late_ocr_result_after_stop_is_discarded(plate_frame: np.ndarray) -> None:
    engine = FakeEngine()

    async def scenario():
        engine.gate = asyncio.Event()
        session = CaptureSession(StaticFrameSource([plate_frame]), engine, config=_config())
        session.start()
        assert session.tick()
        await _wait_for_state(session, SessionState.PROCESSING)
        while not engine.calls:
            await asyncio.sleep(0.01)

        session.stop()
        engine.gate.set()
        await asyncio.sleep(0.05)
        return session

    session = asyncio.run(scenario())

    assert len(engine.calls) == 1
    assert session.state is SessionState.IDLE
    assert session.result is None


def test_ocr_failure_offers_manual_retry(plate_frame: np.ndarray) -> None:
    engine = FakeEngine(error=OcrEngineError("tesseract missing"))
    results = []

    async def scenario():
        session = CaptureSession(
            StaticFrameSource([plate_frame]), engine, config=_config(), on_result=results.append
        )
        session.start()
        assert session.tick()
        failed = await session.wait_for_result(timeout=5)
        assert session.state is SessionState.DONE
        assert session.locked_frame is None

        # no automatic retry: the session waits in DONE until reset
        await asyncio.sleep(0.05)
        assert len(engine.calls) == 1

        engine.error = None
        assert session.reset()
        assert session.state is SessionState.SCANNING
        assert session.result is None
        assert session.tick()
        retried = await session.wait_for_result(timeout=5)
        session.stop()
        return failed, retried

    failed, retried = asyncio.run(scenario())

    assert not failed.ok
    assert "tesseract missing" in failed.error
    assert failed.plate_text == ""
    assert retried.ok
    assert retried.plate_text == "ABC1D23"
    assert retried.generation > failed.generation
    assert len(results) == 2
    assert results[0] is failed
    assert results[1] is retried


def test_reset_only_from_done(plate_frame: np.ndarray) -> None:
    async def scenario():
        session = CaptureSession(StaticFrameSource([plate_frame]), FakeEngine(), config=_config())
        assert not session.reset()
        session.start()
        assert not session.reset()
        session.stop()
        return session

    assert asyncio.run(scenario()).state is SessionState.IDLE


def test_tick_is_noop_when_idle(plate_frame: np.ndarray) -> None:
    session = CaptureSession(StaticFrameSource([plate_frame]), FakeEngine(), config=_config())

    assert not session.tick()
    assert session.state is SessionState.IDLE

    session.stop()
    assert session.state is SessionState.IDLE


def test_no_plate_keeps_scanning(blank_frame: np.ndarray) -> None:
    async def scenario():
        session = CaptureSession(StaticFrameSource([blank_frame]), FakeEngine(), config=_config())
        session.start()
        assert not session.tick()
        assert session.state is SessionState.SCANNING
        assert session.is_scanning
        assert not session.last_detection.found
        session.stop()

    asyncio.run(scenario())


def test_processed_plate_is_exported(plate_frame: np.ndarray, tmp_path) -> None:
    async def scenario():
        session = CaptureSession(
            StaticFrameSource([plate_frame]),
            FakeEngine(),
            config=_config(),
            export_dir=tmp_path,
        )
        session.start()
        session.tick()
        result = await session.wait_for_result(timeout=5)
        session.stop()
        return result

    result = asyncio.run(scenario())

    assert result.artifact_path is not None
    assert result.artifact_path.exists()
    assert result.artifact_path.name.startswith("placa_processada_")
    assert result.processed_image.ndim == 2


class FlakySource(StaticFrameSource):
    def __init__(self, frames, error: Exception) -> None:
        super().__init__(frames)
        self.error = error

    def read(self) -> np.ndarray:
        if self.error is not None:
            error, self.error = self.error, None
            raise error
        return super().read()


def test_scan_loop_survives_unexpected_read_error(plate_frame: np.ndarray, caplog) -> None:
    source = FlakySource([plate_frame], RuntimeError("driver glitch"))

    async def scenario():
        session = CaptureSession(source, FakeEngine(), config=_config(scan_interval=0.01))
        return await scan_until_plate(session, timeout=5)

    with caplog.at_level(logging.ERROR, logger="src.pipeline.session"):
        result = asyncio.run(scenario())

    assert result is not None
    assert result.plate_text == "ABC1D23"
    assert "Scan cycle failed" in caplog.text
    assert source.error is None


def test_empty_frame_is_skipped_while_scanning(plate_frame: np.ndarray, caplog) -> None:
    empty = np.zeros((10, 10, 0), dtype=np.uint8)
    source = StaticFrameSource([empty, plate_frame])

    async def scenario():
        session = CaptureSession(source, FakeEngine(), config=_config(scan_interval=10.0))
        session.start()
        assert not session.tick()
        assert session.state is SessionState.SCANNING
        assert session.is_scanning
        assert session.tick()
        assert session.state is SessionState.LOCKED
        result = await session.wait_for_result(timeout=5)
        session.stop()
        return result

    with caplog.at_level(logging.WARNING, logger="src.pipeline.session"):
        result = asyncio.run(scenario())

    assert result.plate_text == "ABC1D23"
    assert "Skipping cycle" in caplog.text


def test_stop_wakes_pending_waiter(blank_frame: np.ndarray) -> None:
    async def scenario():
        session = CaptureSession(StaticFrameSource([blank_frame]), FakeEngine(), config=_config())
        session.start()
        waiter = asyncio.create_task(session.wait_for_result())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        session.stop()
        result = await asyncio.wait_for(waiter, timeout=1)
        return session, result

    session, result = asyncio.run(scenario())

    assert result is None
    assert session.state is SessionState.IDLE


def test_export_failure_still_reads_plate(plate_frame: np.ndarray, tmp_path) -> None:
    not_a_dir = tmp_path / "plates"
    not_a_dir.write_text("occupied")
    engine = FakeEngine()

    async def scenario():
        session = CaptureSession(
            StaticFrameSource([plate_frame]),
            engine,
            config=_config(),
            export_dir=not_a_dir,
        )
        session.start()
        assert session.tick()
        result = await session.wait_for_result(timeout=5)
        session.stop()
        return result

    result = asyncio.run(scenario())

    assert result.ok
    assert result.plate_text == "ABC1D23"
    assert result.artifact_path is None
    assert len(engine.calls) == 1
