# ocrbatch/classifier.py
from __future__ import annotations

from pathlib import Path
from typing import Union

from .models import ProcessingStrategy

PDF_EXTENSIONS = frozenset({".pdf"})
IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff"})


def classify(path: Union[str, Path]) -> ProcessingStrategy:
    """
    Map a file name to its processing strategy by extension, case-insensitively.
    Unknown or missing extensions map to UNSUPPORTED.
    """
    ext = Path(path).suffix.lower()
    if ext in PDF_EXTENSIONS:
        return ProcessingStrategy.PDF
    if ext in IMAGE_EXTENSIONS:
        return ProcessingStrategy.IMAGE
    return ProcessingStrategy.UNSUPPORTED
