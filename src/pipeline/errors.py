"""Exceptions raised by the plate scanning pipeline."""

from __future__ import annotations


class PlateScanError(Exception):
    """Base class for recoverable scanning failures."""


class SourceNotReadyError(PlateScanError):
    """The frame source has no usable frame yet (no data or zero dimensions)."""


class EmptyFrameError(PlateScanError):
    """A captured frame carries no pixel data."""


class DegenerateGeometryError(PlateScanError):
    """The candidate quadrilateral cannot produce a usable homography."""


class OcrEngineError(PlateScanError):
    """The OCR engine call failed."""
