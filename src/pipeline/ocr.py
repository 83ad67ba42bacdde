"""OCR engines for plate character zones.

Engines expose an async ``recognize(image, config)``; the blocking engine call
runs in a worker thread so the scanning loop keeps running.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import numpy as np
import pytesseract

from src.pipeline.config import OcrConfig
from src.pipeline.errors import OcrEngineError

LOGGER = logging.getLogger(__name__)

# Tesseract language codes mapped to EasyOCR ones
EASYOCR_LANGUAGES = {
    "por": "pt",
    "eng": "en",
    "spa": "es",
}


class OcrEngine(Protocol):
    name: str

    async def recognize(self, image: np.ndarray, config: OcrConfig) -> str: ...


def tesseract_options(config: OcrConfig) -> str:
    return (
        f"--psm {config.page_segmentation_mode} "
        f"-c tessedit_char_whitelist={config.whitelist}"
    )


class TesseractEngine:
    """Tesseract through pytesseract."""

    name = "tesseract"

    def __init__(self, tesseract_cmd: str | None = None) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def recognize_sync(self, image: np.ndarray, config: OcrConfig) -> str:
        if image.size == 0:
            return ""
        try:
            return pytesseract.image_to_string(
                image,
                lang=config.language,
                config=tesseract_options(config),
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            raise OcrEngineError(f"Tesseract failed: {exc}") from exc

    async def recognize(self, image: np.ndarray, config: OcrConfig) -> str:
        return await asyncio.to_thread(self.recognize_sync, image, config)


class EasyOcrEngine:
    """EasyOCR reader, created on first use and reused."""

    name = "easyocr"

    def __init__(self, gpu: bool = False) -> None:
        self.gpu = gpu
        self._reader = None
        self._reader_language: str | None = None

    def _get_reader(self, language: str):
        if self._reader is None or self._reader_language != language:
            try:
                import easyocr
            except ImportError as exc:
                raise OcrEngineError(
                    "EasyOCR not installed. Install with: pip install easyocr"
                ) from exc
            LOGGER.info("Loading EasyOCR reader (%s)", language)
            self._reader = easyocr.Reader([language], gpu=self.gpu)
            self._reader_language = language
        return self._reader

    def recognize_sync(self, image: np.ndarray, config: OcrConfig) -> str:
        if image.size == 0:
            return ""
        language = EASYOCR_LANGUAGES.get(config.language, config.language)
        reader = self._get_reader(language)
        try:
            results = reader.readtext(
                image,
                detail=0,
                paragraph=False,
                allowlist=config.whitelist,
            )
        except Exception as exc:
            raise OcrEngineError(f"EasyOCR failed: {exc}") from exc
        return " ".join(text.strip() for text in results if text.strip())

    async def recognize(self, image: np.ndarray, config: OcrConfig) -> str:
        return await asyncio.to_thread(self.recognize_sync, image, config)


ENGINES = {
    TesseractEngine.name: TesseractEngine,
    EasyOcrEngine.name: EasyOcrEngine,
}


def build_engine(name: str = "tesseract") -> OcrEngine:
    try:
        engine_cls = ENGINES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown OCR engine '{name}' (choose from {', '.join(sorted(ENGINES))})"
        ) from None
    return engine_cls()


async def read_plate_text(
    engine: OcrEngine,
    image: np.ndarray,
    config: OcrConfig,
) -> str:
    """Run the engine on a prepared character zone and return the raw text.

    Raises:
        OcrEngineError: if the engine call fails for any reason.
    """
    try:
        raw_text = await engine.recognize(image, config)
    except OcrEngineError:
        raise
    except Exception as exc:
        raise OcrEngineError(f"{engine.name} failed: {exc}") from exc
    LOGGER.info("OCR (%s) raw text: %r", engine.name, raw_text)
    return raw_text or ""
