# src/ocrbatch/worker.py
from __future__ import annotations

import logging
import os
import signal
from multiprocessing.util import Finalize
from pathlib import Path
from typing import Any, Optional, Tuple

from .engine import build_engine_factory
from .exceptions import EngineInitError
from .logger import configure_worker_logging
from .models import FileOutcome, InputDocument
from .pdf_processor import get_pdf_processor
from .processors import process_document

logger = logging.getLogger("ocrbatch")

# One engine instance per worker process
ocr_engine: Any | None = None
init_error: Optional[str] = None
_settings: dict = {}


def ignore_sigint():
    """Ctrl+C reaches the whole process group, only the parent decides when to stop."""
    signal.signal(signal.SIGINT, signal.SIG_IGN)


def initialize_worker(log_queue, backend_path: str, backend_kwargs: dict,
                      pdf_engine: str, scale: float, output_dir: str):
    """
    Called once in each worker process.
    Loads the backend class, creates and initializes the engine instance and
    registers its shutdown for when the worker exits.
    """
    global ocr_engine, init_error
    ignore_sigint()
    configure_worker_logging(log_queue)
    pid = os.getpid()
    logger.info("Initializing worker (backend: %s, pid: %s)", backend_path, pid)

    _settings.update(
        pdf_processor=get_pdf_processor(pdf_engine),
        scale=float(scale),
        output_dir=Path(output_dir),
    )
    try:
        engine = build_engine_factory(backend_path, backend_kwargs)()
        engine.initialize()
    except Exception as e:
        # Raising here makes the pool respawn workers forever, report on first task instead
        logger.exception("Backend initialization failed for %s", backend_path)
        init_error = f"{type(e).__name__}: {e}"
        return

    ocr_engine = engine
    Finalize(None, shutdown_worker, exitpriority=10)
    logger.info("Worker ready (pid: %s)", pid)


def shutdown_worker():
    global ocr_engine
    if ocr_engine is None:
        return
    try:
        ocr_engine.shutdown()
        logger.info("Worker engine shut down (pid: %s)", os.getpid())
    finally:
        ocr_engine = None


def process_in_worker(task: Tuple[InputDocument, Optional[str], bool]) -> FileOutcome:
    """
    Runs one document through the single-file processor with this worker's engine.
    Raises EngineInitError when the worker's engine never started.
    """
    document, output_path, collision = task
    if ocr_engine is None:
        raise EngineInitError(init_error or "worker called before initialization")

    return process_document(
        document,
        ocr_engine,
        _settings["output_dir"],
        pdf_processor=_settings["pdf_processor"],
        scale=_settings["scale"],
        output_path=Path(output_path) if output_path else None,
        collision=collision,
    )
