# ocrbatch/ocr_backends/__init__.py
from .base import BaseOCREngine

BACKEND_ALIASES = {
    # Tesseract (pytesseract)
    "tess": "ocrbatch.ocr_backends.tesseract_backend.TesseractOCREngine",
    "tesseract": "ocrbatch.ocr_backends.tesseract_backend.TesseractOCREngine",
    "pytesseract": "ocrbatch.ocr_backends.tesseract_backend.TesseractOCREngine",

    # EasyOCR
    "easy": "ocrbatch.ocr_backends.easyocr_backend.EasyOCREngine",
    "easyocr": "ocrbatch.ocr_backends.easyocr_backend.EasyOCREngine",
}

__all__ = ["BaseOCREngine", "BACKEND_ALIASES"]
