# ocrbatch/ocr_backends/easyocr_backend.py
from __future__ import annotations

from typing import Dict, Any
import io
import logging
import warnings

import numpy as np
from PIL import Image

import easyocr

from .base import BaseOCREngine

logger = logging.getLogger("ocrbatch")


# -----------------------------
# Helpers
# -----------------------------

def _as_bool(x, default=True) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, str):
        s = x.strip().lower()
        if s in ("true", "1", "yes", "y", "on"):
            return True
        if s in ("false", "0", "no", "n", "off"):
            return False
    return default


def _norm_langs_to_easyocr(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    """Accept languages or lang and normalize to a list for EasyOCR."""
    k = dict(kwargs or {})
    langs = k.pop("languages", None) or k.pop("lang", None)
    if isinstance(langs, str):
        langs = [langs]
    if not langs:
        langs = ["en"]
    k["languages"] = [str(l).strip() for l in langs if l]
    return k


def _bytes_to_rgb(image: bytes) -> np.ndarray:
    """Decode an encoded image into an RGB uint8 array."""
    with Image.open(io.BytesIO(image)) as im:
        return np.array(im.convert("RGB"))


def _torch_cuda_available() -> bool:
    try:
        import torch
        return bool(torch.cuda.is_available())
    except Exception:
        return False


# -----------------------------
# Backend
# -----------------------------

class EasyOCREngine(BaseOCREngine):
    """
    EasyOCR adapter.

    Supported kwargs (all optional):
      - languages / lang: list[str] | str (default ["en"])
      - gpu / use_gpu: bool (defaults to True if CUDA is available, else False)
      - model_storage_directory: str
      - download_enabled: bool (default True)
      - decoder: 'greedy' | 'beamsearch', beam_width: int
      - paragraph: bool (default True), join lines into paragraphs
    """

    name = "easyocr"

    def __init__(self, **kwargs: Dict[str, Any]):
        k = _norm_langs_to_easyocr(kwargs)

        self.languages = k.pop("languages")
        self.want_gpu = _as_bool(k.pop("gpu", k.pop("use_gpu", True)), True)
        self.model_dir = k.pop("model_storage_directory", None)
        self.download_enabled = _as_bool(k.pop("download_enabled", True), True)
        self.paragraph = _as_bool(k.pop("paragraph", True), True)

        decoder = str(k.pop("decoder", "greedy")).strip().lower()
        self._decoder = decoder if decoder in ("greedy", "beamsearch") else "greedy"
        try:
            beam_width = int(k.pop("beam_width", k.pop("beamWidth", 10)))
        except (TypeError, ValueError):
            beam_width = 10
        # clamp to a modest range to reduce numeric issues and CPU overhead
        self._beam_width = max(1, min(beam_width, 20))

        self._reader_kwargs = k
        self.reader = None

    def initialize(self) -> None:
        use_gpu = bool(self.want_gpu and _torch_cuda_available())
        try:
            self.reader = easyocr.Reader(
                self.languages,
                gpu=use_gpu,
                model_storage_directory=self.model_dir,
                download_enabled=self.download_enabled,
                verbose=False,
                **self._reader_kwargs,
            )
        except Exception as e:
            if not use_gpu:
                raise
            logger.warning("EasyOCR GPU init failed, falling back to CPU: %s", e)
            self.reader = easyocr.Reader(
                self.languages,
                gpu=False,
                model_storage_directory=self.model_dir,
                download_enabled=self.download_enabled,
                verbose=False,
            )
        logger.info("EasyOCR ready (languages: %s, gpu: %s)", self.languages, use_gpu)

    def recognize(self, image: bytes) -> str:
        if self.reader is None:
            raise RuntimeError("EasyOCR engine used before initialize()")
        rgb = _bytes_to_rgb(image)

        with np.errstate(over="ignore", invalid="ignore"):
            with warnings.catch_warnings(record=True) as wlist:
                warnings.simplefilter("always", category=RuntimeWarning)
                lines = self.reader.readtext(
                    rgb,
                    detail=0,
                    paragraph=self.paragraph,
                    decoder=self._decoder,
                    beamWidth=self._beam_width,
                )

            # numeric warnings during beam search, retry greedily
            if self._decoder == "beamsearch" and any(
                ("overflow" in str(w.message).lower()) for w in wlist
            ):
                logger.warning("EasyOCR beamsearch overflow detected; retrying with greedy decoder")
                lines = self.reader.readtext(rgb, detail=0, paragraph=self.paragraph, decoder="greedy")

        if isinstance(lines, (list, tuple)):
            return "\n".join(str(x) for x in lines if x)
        return str(lines) if lines else ""

    def shutdown(self) -> None:
        self.reader = None
        if self.want_gpu and _torch_cuda_available():
            import torch
            torch.cuda.empty_cache()
