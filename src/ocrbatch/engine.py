# src/ocrbatch/engine.py
from __future__ import annotations

import importlib
import logging
from contextlib import contextmanager
from functools import partial
from typing import Any, Callable, Dict, Iterator, Optional

from .exceptions import ConfigError, EngineInitError
from .ocr_backends import BACKEND_ALIASES, BaseOCREngine

logger = logging.getLogger("ocrbatch")

EngineFactory = Callable[[], BaseOCREngine]


def normalize_backend_alias(name: str) -> str:
    """
    Allow short aliases (case-insensitive) and module-only shorthands.
    Returns a fully qualified dotted path 'module.Class'.
    """
    if not name:
        return name

    original = name.strip().strip('"\'')
    alias = original.lower()
    if alias in BACKEND_ALIASES:
        return BACKEND_ALIASES[alias]

    # Module-only shorthands → attach the expected class
    if alias.endswith(".tesseract_backend"):
        return BACKEND_ALIASES["tesseract"]
    if alias.endswith(".easyocr_backend"):
        return BACKEND_ALIASES["easyocr"]

    return original


def import_backend(dotted: str):
    """Import and return the backend class named by 'module.Class'."""
    mod_path, _, attr = dotted.rpartition(".")
    if not mod_path or not attr:
        raise ConfigError(f"OCR backend must be 'module.Class', got: {dotted!r}")
    try:
        mod = importlib.import_module(mod_path)
    except ImportError as e:
        raise ConfigError(f"Cannot import backend module: {mod_path!r} ({e})") from e
    try:
        return getattr(mod, attr)
    except AttributeError as e:
        raise ConfigError(
            f"Backend class not found: {dotted}\n"
            f"- For Tesseract, use: {BACKEND_ALIASES['tesseract']}\n"
            f"- For EasyOCR, use:   {BACKEND_ALIASES['easyocr']}"
        ) from e


def build_engine_factory(backend: str, backend_kwargs: Optional[Dict[str, Any]] = None) -> EngineFactory:
    """Resolve a backend name once and return a zero-argument engine constructor."""
    engine_cls = import_backend(normalize_backend_alias(backend))
    return partial(engine_cls, **(backend_kwargs or {}))


@contextmanager
def engine_session(factory: EngineFactory) -> Iterator[BaseOCREngine]:
    """
    Scoped acquisition of one OCR engine.

    The engine is created and initialized on entry; any failure there is
    raised as EngineInitError. shutdown() runs exactly once on every exit
    path once initialization succeeded.
    """
    try:
        engine = factory()
        engine.initialize()
    except EngineInitError:
        raise
    except Exception as e:
        raise EngineInitError(f"OCR engine failed to initialize: {e}") from e

    logger.debug("OCR engine %s initialized", getattr(engine, "name", type(engine).__name__))
    try:
        yield engine
    finally:
        try:
            engine.shutdown()
        finally:
            logger.debug("OCR engine %s shut down", getattr(engine, "name", type(engine).__name__))
