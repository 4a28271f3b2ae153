# ocrbatch/__init__.py
"""Batch OCR of scanned images and multi-page PDFs into plain-text files."""

from .classifier import classify
from .config import OCRConfig
from .exceptions import (
    OCRBatchError,
    ConfigError,
    EngineInitError,
    InputDirectoryError,
    OutputDirectoryError,
    FileProcessingError,
)
from .models import BatchReport, FileOutcome, InputDocument, ProcessingStrategy
from .processors import assemble_pages, process_document
from .runner import BatchRunner, run_batch

__version__ = "1.0.0"

__all__ = [
    "classify",
    "OCRConfig",
    "OCRBatchError",
    "ConfigError",
    "EngineInitError",
    "InputDirectoryError",
    "OutputDirectoryError",
    "FileProcessingError",
    "BatchReport",
    "FileOutcome",
    "InputDocument",
    "ProcessingStrategy",
    "assemble_pages",
    "process_document",
    "BatchRunner",
    "run_batch",
]
