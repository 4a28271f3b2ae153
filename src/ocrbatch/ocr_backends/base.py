# ocrbatch/ocr_backends/base.py
from abc import ABC, abstractmethod


class BaseOCREngine(ABC):
    """
    One OCR engine instance. Engines are stateful and sequential: a caller
    must not issue concurrent recognize() calls against the same instance.
    """

    name = "base"

    def initialize(self) -> None:
        """One-time setup. Raise to signal the engine cannot start."""

    @abstractmethod
    def recognize(self, image: bytes) -> str:
        """Return the text recognized in one encoded image (PNG, JPEG, ...)."""
        pass

    def shutdown(self) -> None:
        """Release engine resources."""
