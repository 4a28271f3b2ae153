# src/ocrbatch/pdf_processor.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import fitz  # PyMuPDF

from .exceptions import RasterizationError
from .models import PageImage

logger = logging.getLogger("ocrbatch")


# --- Step 1, interface ---
class BasePDFProcessor(ABC):
    """
    Interface for any PDF rasterization engine.
    """

    @abstractmethod
    def rasterize(self, file_path: Path, scale: float = 2.0) -> List[PageImage]:
        """
        Render every page of a PDF to an in-memory image.
        Returns PageImage objects in ascending page order.
        Raises RasterizationError on failure.
        """
        raise NotImplementedError


# --- Step 2, concrete implementation with PyMuPDF ---
class PyMuPDFProcessor(BasePDFProcessor):
    """PDF processor that uses PyMuPDF."""

    image_format = "png"

    def rasterize(self, file_path: Path, scale: float = 2.0) -> List[PageImage]:
        """
        Render each page to PNG bytes. The zoom matrix is applied on both
        axes, so scale=2.0 doubles the page's native 72 dpi resolution.
        """
        file_path = Path(file_path)
        pages: List[PageImage] = []
        try:
            matrix = fitz.Matrix(scale, scale)
            with fitz.open(file_path) as doc:
                if not doc.is_pdf:
                    raise RasterizationError(file_path, "not a PDF document")
                if len(doc) == 0:
                    logger.debug("PDF has zero pages: %s", file_path)
                    return []
                for index, page in enumerate(doc):
                    pix = page.get_pixmap(matrix=matrix, alpha=False)
                    pages.append(PageImage(page_number=index + 1, content=pix.tobytes(self.image_format)))
        except RasterizationError:
            raise
        except Exception as e:
            raise RasterizationError(file_path, f"PyMuPDF failed to render pages: {e}") from e

        logger.debug("Rasterized %d pages from %s at scale %.2f", len(pages), file_path.name, scale)
        return pages


# --- Step 3, factory ---
def get_pdf_processor(engine_name: str = "pymupdf") -> BasePDFProcessor:
    """
    Create a PDF processor by name.
    """
    name = (engine_name or "").lower()
    if name == "pymupdf":
        return PyMuPDFProcessor()
    raise ValueError(f"Unknown PDF engine: '{engine_name}'. Supported engines: ['pymupdf']")
