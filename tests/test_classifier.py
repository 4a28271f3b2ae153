from __future__ import annotations

import pytest

from ocrbatch.classifier import IMAGE_EXTENSIONS, classify
from ocrbatch.models import ProcessingStrategy


class TestClassify:
    @pytest.mark.parametrize("ext", sorted(IMAGE_EXTENSIONS))
    def test_image_extensions(self, ext):
        assert classify(f"scan{ext}") is ProcessingStrategy.IMAGE

    def test_pdf(self):
        assert classify("report.pdf") is ProcessingStrategy.PDF

    @pytest.mark.parametrize("name", ["Scan.PNG", "photo.JpEg", "REPORT.PDF", "x.TIFF"])
    def test_case_insensitive(self, name):
        assert classify(name) is not ProcessingStrategy.UNSUPPORTED
        assert classify(name) is classify(name.lower())

    @pytest.mark.parametrize("name", ["letter.docx", "README", "archive.tar.gz", "notes.txt", ".pdf", "image.tif"])
    def test_unsupported(self, name):
        assert classify(name) is ProcessingStrategy.UNSUPPORTED

    def test_only_last_suffix_counts(self):
        assert classify("scan.pdf.png") is ProcessingStrategy.IMAGE
        assert classify("scan.png.pdf") is ProcessingStrategy.PDF
