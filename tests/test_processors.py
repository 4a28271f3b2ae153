from __future__ import annotations

from pathlib import Path

from ocrbatch.models import FAILED, PROCESSED, SKIPPED, InputDocument, ProcessingStrategy, RecognitionResult
from ocrbatch.processors import assemble_pages, plan_output_paths, process_document


def _doc(path: Path, content: bytes) -> InputDocument:
    path.write_bytes(content)
    return InputDocument.from_path(path)


# =========================================================================
# Page text assembly
# =========================================================================


class TestAssemblePages:
    def test_exact_format(self):
        results = [RecognitionResult("A", 1), RecognitionResult("B", 2), RecognitionResult("C", 3)]
        assert assemble_pages(results) == (
            "--- Page 1 ---\nA\n\n--- Page 2 ---\nB\n\n--- Page 3 ---\nC\n\n"
        )

    def test_orders_by_page_number(self):
        results = [RecognitionResult("C", 3), RecognitionResult("A", 1), RecognitionResult("B", 2)]
        assert assemble_pages(results).index("A") < assemble_pages(results).index("B")
        assert assemble_pages(results).startswith("--- Page 1 ---\nA\n\n")

    def test_empty_page_text_keeps_delimiter(self):
        assert assemble_pages([RecognitionResult("", 1)]) == "--- Page 1 ---\n\n\n"

    def test_no_pages(self):
        assert assemble_pages([]) == ""


# =========================================================================
# Output naming
# =========================================================================


class TestPlanOutputPaths:
    def _docs(self, tmp_path, names):
        docs = []
        for name in names:
            docs.append(_doc(tmp_path / name, b"x"))
        return docs

    def test_unique_names_use_base_name(self, tmp_path):
        docs = self._docs(tmp_path, ["a.pdf", "b.png"])
        plan = plan_output_paths(docs, tmp_path / "out")
        assert plan[docs[0].source_path] == tmp_path / "out" / "a.txt"
        assert plan[docs[1].source_path] == tmp_path / "out" / "b.txt"

    def test_unsupported_not_planned(self, tmp_path):
        docs = self._docs(tmp_path, ["a.docx", "a.png"])
        plan = plan_output_paths(docs, tmp_path / "out")
        assert docs[0].source_path not in plan
        assert plan[docs[1].source_path] == tmp_path / "out" / "a.txt"

    def test_disambiguate(self, tmp_path):
        docs = self._docs(tmp_path, ["scan.pdf", "scan.PNG", "other.jpg"])
        plan = plan_output_paths(docs, tmp_path / "out", "disambiguate")
        assert plan[docs[0].source_path].name == "scan.pdf.txt"
        assert plan[docs[1].source_path].name == "scan.PNG.txt"
        assert plan[docs[2].source_path].name == "other.txt"

    def test_extension_case_variants_get_distinct_names(self, tmp_path):
        docs = self._docs(tmp_path, ["scan.JPG", "scan.jpg"])
        plan = plan_output_paths(docs, tmp_path / "out")
        names = [plan[d.source_path].name for d in docs]
        assert names == ["scan.JPG.txt", "scan.jpg.2.txt"]

    def test_base_name_case_variants_collide(self, tmp_path):
        docs = self._docs(tmp_path, ["Scan.pdf", "scan.png"])
        plan = plan_output_paths(docs, tmp_path / "out")
        assert [plan[d.source_path].name for d in docs] == ["Scan.pdf.txt", "scan.png.txt"]

    def test_disambiguated_name_never_takes_a_plain_name(self, tmp_path):
        docs = self._docs(tmp_path, ["a.pdf", "a.pdf.png", "a.png"])
        plan = plan_output_paths(docs, tmp_path / "out")
        assert plan[docs[1].source_path].name == "a.pdf.txt"
        assert plan[docs[0].source_path].name == "a.pdf.2.txt"
        assert plan[docs[2].source_path].name == "a.png.txt"

    def test_every_planned_name_is_unique(self, tmp_path):
        names = ["x.pdf", "x.PDF.png", "x.pdf.png", "x.png", "X.png.jpg", "x.pdf.2.png", "x.PNG"]
        docs = self._docs(tmp_path, names)
        planned = [p.name.casefold() for p in plan_output_paths(docs, tmp_path / "out").values()]
        assert len(planned) == len(names)
        assert len(set(planned)) == len(planned)

    def test_overwrite(self, tmp_path):
        docs = self._docs(tmp_path, ["scan.pdf", "scan.png"])
        plan = plan_output_paths(docs, tmp_path / "out", "overwrite")
        assert {p.name for p in plan.values()} == {"scan.txt"}

    def test_error_keeps_first_only(self, tmp_path):
        docs = self._docs(tmp_path, ["scan.pdf", "scan.png"])
        plan = plan_output_paths(docs, tmp_path / "out", "error")
        assert plan[docs[0].source_path].name == "scan.txt"
        assert plan[docs[1].source_path] is None


# =========================================================================
# Single-file processing
# =========================================================================


class TestProcessDocument:
    def test_image_written_verbatim(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "note.png", b"hello world\n")
        engine = engine_factory()

        outcome = process_document(doc, engine, output_dir, pdf_processor=stub_pdf)

        assert outcome.status == PROCESSED
        assert outcome.strategy is ProcessingStrategy.IMAGE
        assert (output_dir / "note.txt").read_text(encoding="utf-8") == "hello world\n"
        assert engine.images == [b"hello world\n"]
        assert stub_pdf.calls == []

    def test_pdf_pages_assembled(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "report.pdf", b"A|B|C")

        outcome = process_document(doc, engine_factory(), output_dir, pdf_processor=stub_pdf, scale=3.0)

        assert outcome.status == PROCESSED
        assert outcome.total_pages == 3
        assert stub_pdf.calls == [("report.pdf", 3.0)]
        assert (output_dir / "report.txt").read_text(encoding="utf-8") == (
            "--- Page 1 ---\nA\n\n--- Page 2 ---\nB\n\n--- Page 3 ---\nC\n\n"
        )

    def test_pages_recognized_in_page_order(self, tmp_path, output_dir, engine_factory, stub_pdf_cls):
        output_dir.mkdir()
        doc = _doc(tmp_path / "report.pdf", b"A|B|C")
        engine = engine_factory()

        process_document(doc, engine, output_dir, pdf_processor=stub_pdf_cls(reverse=True))

        assert engine.images == [b"A", b"B", b"C"]
        assert (output_dir / "report.txt").read_text(encoding="utf-8").startswith("--- Page 1 ---\nA")

    def test_unsupported_is_skipped(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "letter.docx", b"irrelevant")
        engine = engine_factory()

        outcome = process_document(doc, engine, output_dir, pdf_processor=stub_pdf)

        assert outcome.status == SKIPPED
        assert outcome.error is None
        assert engine.images == []
        assert list(output_dir.iterdir()) == []

    def test_recognition_failure_is_returned(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "bad.jpg", b"FAIL")

        outcome = process_document(doc, engine_factory(), output_dir, pdf_processor=stub_pdf)

        assert outcome.status == FAILED
        assert "malformed image" in outcome.error
        assert not (output_dir / "bad.txt").exists()

    def test_failure_on_one_page_fails_document(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "report.pdf", b"A|FAIL|C")

        outcome = process_document(doc, engine_factory(), output_dir, pdf_processor=stub_pdf)

        assert outcome.status == FAILED
        assert "page 2" in outcome.error
        assert not (output_dir / "report.txt").exists()

    def test_rasterization_failure_is_returned(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "broken.pdf", b"CORRUPT")

        outcome = process_document(doc, engine_factory(), output_dir, pdf_processor=stub_pdf)

        assert outcome.status == FAILED
        assert "cannot parse PDF" in outcome.error

    def test_write_failure_is_returned(self, tmp_path, engine_factory, stub_pdf):
        doc = _doc(tmp_path / "note.png", b"text")
        missing_dir = tmp_path / "does-not-exist"

        outcome = process_document(doc, engine_factory(), missing_dir, pdf_processor=stub_pdf)

        assert outcome.status == FAILED
        assert "Failed to write" in outcome.error

    def test_collision_flag_fails_without_ocr(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "scan.png", b"text")
        engine = engine_factory()

        outcome = process_document(doc, engine, output_dir, pdf_processor=stub_pdf, collision=True)

        assert outcome.status == FAILED
        assert "already claimed" in outcome.error
        assert engine.images == []

    def test_explicit_output_path(self, tmp_path, output_dir, engine_factory, stub_pdf):
        output_dir.mkdir()
        doc = _doc(tmp_path / "scan.png", b"text")
        target = output_dir / "scan.png.txt"

        outcome = process_document(doc, engine_factory(), output_dir, pdf_processor=stub_pdf, output_path=target)

        assert outcome.output_path == str(target)
        assert target.read_text(encoding="utf-8") == "text"
