# ocrbatch/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Dict, Any


class ProcessingStrategy(str, Enum):
    """Handling path selected for an input file."""
    PDF = "pdf"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class InputDocument:
    """Represents a single file discovered in the input directory."""
    source_path: Path
    base_name: str
    extension: str
    size_bytes: int

    @classmethod
    def from_path(cls, path: Path) -> "InputDocument":
        path = Path(path).absolute()
        return cls(
            source_path=path,
            base_name=path.stem,
            extension=path.suffix.lower(),
            size_bytes=path.stat().st_size,
        )

    @property
    def name(self) -> str:
        return self.source_path.name


@dataclass(frozen=True)
class PageImage:
    """A rasterized PDF page. page_number is 1-based."""
    page_number: int
    content: bytes


@dataclass
class RecognitionResult:
    text: str
    page_number: Optional[int] = None


@dataclass
class OutputArtifact:
    output_path: Path
    text: str


# Per-file outcome statuses
PROCESSED = "processed"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class FileOutcome:
    """Explicit per-file result, collected by the batch loop instead of raising."""
    source_path: str
    status: str
    strategy: ProcessingStrategy = ProcessingStrategy.UNSUPPORTED
    output_path: Optional[str] = None
    total_pages: int = 0
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status != FAILED


@dataclass
class BatchReport:
    """Summary of a batch run. Used for reporting only."""
    input_dir: str
    output_dir: str
    outcomes: List[FileOutcome] = field(default_factory=list)
    interrupted: bool = False

    def add(self, outcome: FileOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def processed(self) -> int:
        return self._count(PROCESSED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def failures(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_dir": self.input_dir,
            "output_dir": self.output_dir,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "interrupted": self.interrupted,
            "failures": [
                {"source_path": o.source_path, "error": o.error} for o in self.failures
            ],
        }
