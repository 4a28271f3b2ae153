# src/ocrbatch/processors.py
from __future__ import annotations

import logging
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .classifier import classify
from .exceptions import (
    FileProcessingError,
    OutputCollisionError,
    OutputWriteError,
    RecognitionError,
)
from .models import (
    FAILED,
    PROCESSED,
    SKIPPED,
    FileOutcome,
    InputDocument,
    OutputArtifact,
    ProcessingStrategy,
    RecognitionResult,
)
from .ocr_backends import BaseOCREngine
from .pdf_processor import BasePDFProcessor

logger = logging.getLogger("ocrbatch")

PAGE_DELIMITER = "--- Page {n} ---"


# --- 1. Page text assembly ---
def assemble_pages(results: Iterable[RecognitionResult]) -> str:
    """
    Join per-page OCR output into one document, in ascending page order.
    Each page contributes its delimiter line, its text and one blank line.
    """
    ordered = sorted(results, key=lambda r: r.page_number or 0)
    return "".join(f"{PAGE_DELIMITER.format(n=r.page_number)}\n{r.text}\n\n" for r in ordered)


# --- 2. Output naming ---
def default_output_path(document: InputDocument, output_dir: Path) -> Path:
    return Path(output_dir) / f"{document.base_name}.txt"


def plan_output_paths(
    documents: List[InputDocument], output_dir: Path, policy: str = "disambiguate"
) -> Dict[Path, Optional[Path]]:
    """
    Decide the output path of every supported document before the run starts.

    Base names are compared case-insensitively, and no two documents are
    given output names that differ only by case. Colliding documents are
    handled by policy:
      - 'disambiguate': every colliding output is named <base><suffix>.txt
        with the input's own suffix; a name already taken by another
        output gets a counter, <base><suffix>.<n>.txt
      - 'overwrite': all share <base>.txt, the last one processed wins
      - 'error': the first in processing order keeps <base>.txt, the rest map to None

    Documents without a collision always keep <base>.txt.
    """
    groups: Dict[str, List[InputDocument]] = defaultdict(list)
    for doc in documents:
        if classify(doc.source_path) is not ProcessingStrategy.UNSUPPORTED:
            groups[doc.base_name.casefold()].append(doc)

    plan: Dict[Path, Optional[Path]] = {}
    claimed = set()
    pending: List[InputDocument] = []

    def claim(doc: InputDocument, name: str) -> None:
        claimed.add(name.casefold())
        plan[doc.source_path] = Path(output_dir) / name

    for docs in groups.values():
        if len(docs) == 1 or policy == "overwrite":
            for doc in docs:
                claim(doc, f"{docs[0].base_name}.txt")
            continue

        logger.warning(
            "Output name collision: %s.txt <- %s",
            docs[0].base_name, ", ".join(d.name for d in docs),
        )
        if policy == "disambiguate":
            pending.extend(docs)
        else:
            first, *rest = docs
            claim(first, f"{first.base_name}.txt")
            for doc in rest:
                plan[doc.source_path] = None

    # after every plain name is claimed
    for doc in pending:
        stem = f"{doc.base_name}{doc.source_path.suffix}"
        name, n = f"{stem}.txt", 2
        while name.casefold() in claimed:
            name, n = f"{stem}.{n}.txt", n + 1
        claim(doc, name)
    return plan


# --- 3. Single-file processing ---
def _recognize(engine: BaseOCREngine, document: InputDocument, image: bytes,
               page_number: Optional[int] = None) -> RecognitionResult:
    try:
        text = engine.recognize(image)
    except Exception as e:
        where = f"page {page_number}" if page_number is not None else "image"
        raise RecognitionError(document.source_path, f"OCR failed on {where}: {e}") from e
    return RecognitionResult(text=text if text is not None else "", page_number=page_number)


def extract_image_text(document: InputDocument, engine: BaseOCREngine) -> str:
    logger.info("Processing image file: %s", document.name)
    image = document.source_path.read_bytes()
    return _recognize(engine, document, image).text


def extract_pdf_text(document: InputDocument, engine: BaseOCREngine,
                     pdf_processor: BasePDFProcessor, scale: float) -> tuple:
    """Rasterize, recognize every page in order, assemble. Returns (text, page_count)."""
    logger.info("Processing PDF file: %s", document.name)
    pages = sorted(pdf_processor.rasterize(document.source_path, scale), key=lambda p: p.page_number)
    results: List[RecognitionResult] = []
    for page in pages:
        logger.debug("Processing PDF page %d of %s", page.page_number, document.name)
        results.append(_recognize(engine, document, page.content, page.page_number))
    return assemble_pages(results), len(pages)


def write_artifact(document: InputDocument, artifact: OutputArtifact) -> None:
    try:
        with open(artifact.output_path, "w", encoding="utf-8", newline="") as f:
            f.write(artifact.text)
    except OSError as e:
        raise OutputWriteError(document.source_path, f"Failed to write {artifact.output_path}, {e}") from e


def process_document(
    document: InputDocument,
    engine: BaseOCREngine,
    output_dir: Path,
    *,
    pdf_processor: BasePDFProcessor,
    scale: float = 2.0,
    output_path: Optional[Path] = None,
    collision: bool = False,
) -> FileOutcome:
    """
    Produce the text artifact for one document.

    Never raises for per-file problems: rasterization, recognition and write
    failures come back as a FAILED outcome carrying the cause.
    """
    strategy = classify(document.source_path)
    source = str(document.source_path)

    if strategy is ProcessingStrategy.UNSUPPORTED:
        logger.info("Skipping unsupported file type: %s", document.name)
        return FileOutcome(source_path=source, status=SKIPPED, strategy=strategy)

    start = time.perf_counter()
    try:
        if collision:
            raise OutputCollisionError(
                document.source_path,
                f"output {document.base_name}.txt is already claimed by another input",
            )

        if strategy is ProcessingStrategy.PDF:
            text, total_pages = extract_pdf_text(document, engine, pdf_processor, scale)
        else:
            text, total_pages = extract_image_text(document, engine), 1

        artifact = OutputArtifact(
            output_path=output_path or default_output_path(document, output_dir),
            text=text,
        )
        write_artifact(document, artifact)
    except FileProcessingError as e:
        logger.error("Failed to process %s: %s", document.name, e.reason)
        return FileOutcome(
            source_path=source, status=FAILED, strategy=strategy,
            error=e.reason, duration_seconds=time.perf_counter() - start,
        )
    except Exception as e:
        logger.exception("Unexpected error while processing %s", document.name)
        return FileOutcome(
            source_path=source, status=FAILED, strategy=strategy,
            error=f"{type(e).__name__}: {e}", duration_seconds=time.perf_counter() - start,
        )

    logger.info("Text written to: %s", artifact.output_path)
    return FileOutcome(
        source_path=source,
        status=PROCESSED,
        strategy=strategy,
        output_path=str(artifact.output_path),
        total_pages=total_pages,
        duration_seconds=time.perf_counter() - start,
    )
