"""Shared fixtures for the ocrbatch test suite.

OCR and PDF rasterization are replaced by deterministic stubs:
  - the stub engine "recognizes" an image by decoding its bytes as text,
    and fails on any image containing b"FAIL";
  - the stub rasterizer treats a .pdf file's content as pages separated
    by b"|", and fails on content starting with b"CORRUPT".
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import pytest

from ocrbatch.exceptions import RasterizationError
from ocrbatch.models import PageImage
from ocrbatch.ocr_backends import BaseOCREngine
from ocrbatch.pdf_processor import BasePDFProcessor


class StubEngine(BaseOCREngine):
    name = "stub"
    instances: List["StubEngine"] = []

    def __init__(self, fail_init: bool = False, **kwargs):
        self.kwargs = kwargs
        self.fail_init = fail_init
        self.initialize_calls = 0
        self.shutdown_calls = 0
        self.images: List[bytes] = []
        StubEngine.instances.append(self)

    def initialize(self) -> None:
        self.initialize_calls += 1
        if self.fail_init:
            raise RuntimeError("engine binary missing")

    def recognize(self, image: bytes) -> str:
        self.images.append(image)
        if b"FAIL" in image:
            raise ValueError("malformed image")
        return image.decode("utf-8", errors="replace")

    def shutdown(self) -> None:
        self.shutdown_calls += 1


class SequenceEngine(StubEngine):
    """Returns the given texts in call order, whatever the image."""

    def __init__(self, texts, **kwargs):
        super().__init__(**kwargs)
        self.texts = list(texts)

    def recognize(self, image: bytes) -> str:
        self.images.append(image)
        return self.texts[len(self.images) - 1]


class StubPDFProcessor(BasePDFProcessor):
    def __init__(self, reverse: bool = False):
        self.reverse = reverse
        self.calls = []

    def rasterize(self, file_path: Path, scale: float = 2.0) -> List[PageImage]:
        self.calls.append((Path(file_path).name, scale))
        data = Path(file_path).read_bytes()
        if data.startswith(b"CORRUPT"):
            raise RasterizationError(file_path, "cannot parse PDF")
        pages = [PageImage(page_number=i + 1, content=chunk) for i, chunk in enumerate(data.split(b"|"))]
        return list(reversed(pages)) if self.reverse else pages


@pytest.fixture(autouse=True)
def _reset_state():
    StubEngine.instances.clear()
    yield
    StubEngine.instances.clear()
    logger = logging.getLogger("ocrbatch")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def engine_factory():
    """Zero-argument factory producing StubEngine instances (see StubEngine.instances)."""
    return StubEngine


@pytest.fixture
def stub_engine_cls():
    return StubEngine


@pytest.fixture
def sequence_engine_cls():
    return SequenceEngine


@pytest.fixture
def stub_pdf():
    return StubPDFProcessor()


@pytest.fixture
def stub_pdf_cls():
    return StubPDFProcessor


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    d = tmp_path / "input"
    d.mkdir()
    return d


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Output directory path. Not created, the runner must create it."""
    return tmp_path / "output"


@pytest.fixture
def make_real_pdf():
    """Write a real PDF with one page per text using PyMuPDF."""
    import fitz

    def _make(path: Path, texts) -> Path:
        doc = fitz.open()
        for text in texts:
            page = doc.new_page()
            page.insert_text((72, 72), text, fontsize=14)
        doc.save(str(path))
        doc.close()
        return path

    return _make


@pytest.fixture
def make_real_png():
    """Write a small real PNG using Pillow."""
    from PIL import Image

    def _make(path: Path, size=(32, 16)) -> Path:
        Image.new("RGB", size, color=(255, 255, 255)).save(path, format="PNG")
        return path

    return _make
