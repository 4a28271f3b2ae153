# ocrbatch/config.py
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Dict, Any, Optional

from .exceptions import ConfigError

COLLISION_POLICIES = ("disambiguate", "overwrite", "error")

DEFAULT_OCR_BACKEND = "ocrbatch.ocr_backends.tesseract_backend.TesseractOCREngine"

_PATH_FIELDS = ["input_dir", "output_dir", "error_log_path"]


@dataclass
class OCRConfig:
    """Configuration for an ocrbatch processing run."""
    input_dir: Path = Path("input")
    output_dir: Path = Path("output")
    error_log_path: Optional[Path] = None

    scale: float = 2.0
    pdf_engine: str = "pymupdf"

    languages: List[str] = field(default_factory=lambda: ["en"])
    ocr_backend: str = DEFAULT_OCR_BACKEND
    ocr_backend_kwargs: Dict[str, Any] = field(default_factory=dict)

    sort_inputs: bool = True
    collision_policy: str = "disambiguate"
    num_workers: int = 1

    show_progress: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        try:
            self.scale = float(self.scale)
        except (TypeError, ValueError):
            raise ConfigError(f"scale must be a number, got {self.scale!r}")
        if self.scale <= 0:
            raise ConfigError(f"scale must be greater than 0, got {self.scale}")
        if int(self.num_workers) < 1:
            raise ConfigError(f"num_workers must be at least 1, got {self.num_workers}")
        self.num_workers = int(self.num_workers)
        if self.collision_policy not in COLLISION_POLICIES:
            raise ConfigError(
                f"Unknown collision policy: '{self.collision_policy}'. Supported: {list(COLLISION_POLICIES)}"
            )

    def backend_kwargs(self) -> Dict[str, Any]:
        """Backend init kwargs, with the configured languages filled in when absent."""
        kw = dict(self.ocr_backend_kwargs or {})
        if "languages" not in kw and "lang" not in kw:
            kw["languages"] = list(self.languages)
        return kw

    def to_dict(self):
        """Converts config to a dictionary suitable for multiprocessing (pickling)."""
        d = asdict(self)
        for key, value in d.items():
            if isinstance(value, Path):
                d[key] = str(value)
        return d

    @classmethod
    def from_dict(cls, config_dict: dict):
        d = dict(config_dict)

        # normalize path-like fields
        for key in _PATH_FIELDS:
            if key in d and isinstance(d[key], str):
                d[key] = Path(d[key])

        # explicit None means use default
        for key in list(d):
            if d[key] is None:
                d.pop(key)

        unknown = set(d) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

        return cls(**d)
