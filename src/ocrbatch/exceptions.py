# ocrbatch/exceptions.py
from __future__ import annotations

from pathlib import Path
from typing import Union


class OCRBatchError(Exception):
    """Base exception for the ocrbatch library."""
    pass


class ConfigError(OCRBatchError):
    """Raised when a run configuration is invalid."""
    pass


class EngineInitError(OCRBatchError):
    """Raised when the OCR engine cannot be started. Aborts the batch."""
    pass


class InputDirectoryError(OCRBatchError):
    """Raised when the input directory is missing or unreadable."""
    pass


class OutputDirectoryError(OCRBatchError):
    """Raised when the output directory cannot be created."""
    pass


class FileProcessingError(OCRBatchError):
    """Raised when a single file fails to process."""

    def __init__(self, source_path: Union[str, Path], message: str):
        super().__init__(f"{Path(source_path).name}: {message}")
        self.source_path = str(source_path)
        self.reason = message


class RasterizationError(FileProcessingError):
    pass


class RecognitionError(FileProcessingError):
    pass


class OutputWriteError(FileProcessingError):
    pass


class OutputCollisionError(FileProcessingError):
    pass
