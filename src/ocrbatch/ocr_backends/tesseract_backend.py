# ocrbatch/ocr_backends/tesseract_backend.py
from __future__ import annotations

from typing import Dict, Any, Optional
import io
import os
import platform
import re
import shutil
import logging
from pathlib import Path

from PIL import Image
import pytesseract as pt

from .base import BaseOCREngine
from ..exceptions import EngineInitError

logger = logging.getLogger("ocrbatch")


def _as_int(x, default: int) -> int:
    try:
        if isinstance(x, str):
            x = x.strip().rstrip(",}] ")
        return int(x)
    except (TypeError, ValueError):
        m = re.search(r"-?\d+", str(x))
        return int(m.group()) if m else default


def resolve_tesseract_cmd() -> Optional[str]:
    # 1) explicit env override
    cmd = os.getenv("TESSERACT_CMD")
    if cmd and Path(cmd).exists():
        return cmd

    # 2) look on PATH
    cmd = shutil.which("tesseract")
    if cmd:
        return cmd

    # 3) common fallbacks by OS
    system = platform.system()
    if system == "Windows":
        candidates = [
            r"C:\Program Files\Tesseract-OCR\tesseract.exe",
            r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
        ]
    elif system == "Darwin":  # macOS
        candidates = [
            "/opt/homebrew/bin/tesseract",   # Apple Silicon Homebrew
            "/usr/local/bin/tesseract",      # Intel Homebrew/MacPorts
        ]
    else:  # Linux and others
        candidates = [
            "/usr/bin/tesseract",
            "/usr/local/bin/tesseract",
            "/snap/bin/tesseract",
        ]

    for p in candidates:
        if Path(p).exists():
            return p
    return None


# Map common ISO codes to Tesseract's traineddata names
_TESS_LANG_MAP = {
    "en": "eng",
    "vi": "vie",
    "fr": "fra",
    "de": "deu",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "nl": "nld",
}


def _norm_langs_to_tesseract(kwargs: Dict[str, Any]) -> str:
    # Accept languages or lang; allow str or list
    langs = kwargs.pop("languages", None) or kwargs.pop("lang", None)
    if isinstance(langs, str):
        langs = [langs]
    if not langs:
        langs = ["en"]
    codes = [_TESS_LANG_MAP.get(str(l).lower(), str(l).lower()) for l in langs]
    return "+".join(sorted(set(codes)))


class TesseractOCREngine(BaseOCREngine):
    """
    Pytesseract-based backend.

    Kwargs supported (all optional):
      - languages / lang: list[str] or str → mapped to "eng", "vie", ...
      - tesseract_cmd: full path to tesseract binary
      - tessdata_prefix: path to tessdata directory
      - oem: 0..3 (default 3 = LSTM)
      - psm: page segmentation mode (default 3 = fully automatic)
      - preserve_interword_spaces: bool (default False)
      - extra_config: str of extra flags (appended to config string)
      - timeout: seconds before a single recognize call is abandoned (default 0, no limit)
    """

    name = "tesseract"

    def __init__(self, **kwargs: Dict[str, Any]):
        k = dict(kwargs)  # don't mutate caller's dict

        # Ignore GPU-related flags, tesseract is CPU only
        for junk in ("gpu", "use_gpu"):
            k.pop(junk, None)

        self.tesseract_cmd = k.pop("tesseract_cmd", None) or k.pop("tesseract_path", None)
        self.tessdata_prefix = k.pop("tessdata_prefix", None)

        # Language(s)
        self.lang = _norm_langs_to_tesseract(k)

        oem = _as_int(k.pop("oem", 3), 3)
        psm = _as_int(k.pop("psm", 3), 3)
        preserve_spaces = bool(k.pop("preserve_interword_spaces", False))
        extra_cfg = str(k.pop("extra_config", "")).strip()
        self.timeout = _as_int(k.pop("timeout", 0), 0)

        cfg_parts = [f"--oem {oem}", f"--psm {psm}"]
        if preserve_spaces:
            cfg_parts.append("-c preserve_interword_spaces=1")
        if extra_cfg:
            cfg_parts.append(extra_cfg)
        self.config = " ".join(cfg_parts)

        if k:
            logger.debug("Ignoring unsupported tesseract kwargs: %s", sorted(k))

        self.version = None

    def initialize(self) -> None:
        cmd = str(self.tesseract_cmd) if self.tesseract_cmd else resolve_tesseract_cmd()
        if self.tesseract_cmd and not os.path.exists(cmd):
            raise EngineInitError(f"Tesseract binary not found: {cmd}")
        if cmd:
            pt.pytesseract.tesseract_cmd = cmd

        if self.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = str(self.tessdata_prefix)

        try:
            self.version = pt.get_tesseract_version()
        except (pt.TesseractNotFoundError, OSError) as e:
            raise EngineInitError(f"Tesseract is not installed or not on PATH: {e}") from e
        logger.info("Tesseract %s ready (lang: %s, config: %s)", self.version, self.lang, self.config)

    def recognize(self, image: bytes) -> str:
        with Image.open(io.BytesIO(image)) as im:
            # multi-frame formats (GIF, TIFF) are read from their first frame
            if im.mode not in ("RGB", "L"):
                im = im.convert("RGB")
            return pt.image_to_string(im, lang=self.lang, config=self.config, timeout=self.timeout)

    def shutdown(self) -> None:
        # pytesseract spawns one process per call, nothing to release
        self.version = None
