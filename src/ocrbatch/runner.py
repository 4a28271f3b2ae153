# src/ocrbatch/runner.py
from __future__ import annotations

import json
import logging
import multiprocessing as mp
import signal
import sys
import time
from multiprocessing.managers import SyncManager
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from .config import OCRConfig
from .engine import EngineFactory, build_engine_factory, engine_session
from .exceptions import ConfigError, InputDirectoryError, OutputDirectoryError
from .logger import start_queue_listener
from .models import FAILED, BatchReport, FileOutcome, InputDocument
from .pdf_processor import BasePDFProcessor, get_pdf_processor
from .processors import plan_output_paths, process_document
from .worker import ignore_sigint, initialize_worker, process_in_worker

logger = logging.getLogger("ocrbatch")


class BatchRunner:
    """
    Batch coordinator: scans the input directory and runs every file through
    the single-file processor against one scoped OCR engine.
    """

    def __init__(self, config: OCRConfig, engine_factory: Optional[EngineFactory] = None,
                 pdf_processor: Optional[BasePDFProcessor] = None):
        self.config = config
        self._custom_factory = engine_factory is not None
        self.engine_factory = engine_factory
        self.pdf_processor = pdf_processor or get_pdf_processor(config.pdf_engine)
        self.shutdown_requested = False

    # -----------------------------
    # Signal handling
    # -----------------------------
    def _graceful_shutdown_handler(self, signum, frame):
        """Let the current file finish, then stop. A second signal exits immediately."""
        if not self.shutdown_requested:
            logger.warning("Shutdown signal received! Finishing current file before exiting.")
            self.shutdown_requested = True
        else:
            logger.error("Second shutdown signal received! Forcing an immediate exit.")
            sys.exit(130)

    def _install_signal_handlers(self) -> Dict[int, object]:
        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self._graceful_shutdown_handler)
        return previous

    # -----------------------------
    # Logging helpers
    # -----------------------------
    def _log_error(self, source_path: str, reason: str):
        if not self.config.error_log_path:
            return
        try:
            self.config.error_log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config.error_log_path, "a", encoding="utf-8") as f:
                log_entry = {
                    "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
                    "source_path": source_path,
                    "error_reason": reason,
                }
                f.write(json.dumps(log_entry, ensure_ascii=False) + "\n")
        except OSError:
            logger.exception("Failed to write error log")

    def _log_summary(self, report: BatchReport):
        logger.info(
            "Summary: processed %d | skipped %d | failed %d",
            report.processed, report.skipped, report.failed,
        )
        for outcome in report.failures:
            logger.error("  FAILED %s: %s", Path(outcome.source_path).name, outcome.error)
        if report.interrupted:
            logger.warning("Run was interrupted before all files were processed")

    # -----------------------------
    # Stage 1. Directories
    # -----------------------------
    def prepare_output_dir(self) -> Path:
        out = Path(self.config.output_dir)
        try:
            out.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirectoryError(f"Cannot create output directory {out}: {e}") from e
        return out

    def scan_input_dir(self) -> List[InputDocument]:
        """
        List the input directory, non-recursively. Subdirectories and other
        non-regular entries are skipped.
        """
        in_dir = Path(self.config.input_dir)
        if not in_dir.is_dir():
            raise InputDirectoryError(f"Input directory does not exist: {in_dir}")
        try:
            entries = list(in_dir.iterdir())
        except OSError as e:
            raise InputDirectoryError(f"Cannot list input directory {in_dir}: {e}") from e

        documents: List[InputDocument] = []
        for entry in entries:
            if not entry.is_file():
                logger.debug("Skipping non-file entry: %s", entry.name)
                continue
            documents.append(InputDocument.from_path(entry))

        if self.config.sort_inputs:
            documents.sort(key=lambda d: d.name)
        logger.info("Found %d files in %s", len(documents), in_dir)
        return documents

    # -----------------------------
    # Stage 2. Processing
    # -----------------------------
    def _record(self, report: BatchReport, outcome: FileOutcome, current: int, total: int):
        report.add(outcome)
        if outcome.status == FAILED:
            self._log_error(outcome.source_path, outcome.error or "unknown error")
        logger.progress(
            "[%d/%d] %s: %s", current, total, Path(outcome.source_path).name, outcome.status,
            extra={"phase": "process", "current": current, "total": total},
        )

    def _run_sequential(self, documents: List[InputDocument], plan, report: BatchReport, output_dir: Path):
        factory = self.engine_factory or build_engine_factory(
            self.config.ocr_backend, self.config.backend_kwargs()
        )
        with engine_session(factory) as engine:
            pbar = tqdm(documents, desc="Processing files", unit="file", disable=not self.config.show_progress)
            for i, document in enumerate(pbar, start=1):
                if self.shutdown_requested:
                    logger.info("Stopping before %s", document.name)
                    report.interrupted = True
                    break
                output_path = plan.get(document.source_path)
                outcome = process_document(
                    document,
                    engine,
                    output_dir,
                    pdf_processor=self.pdf_processor,
                    scale=self.config.scale,
                    output_path=output_path,
                    collision=document.source_path in plan and output_path is None,
                )
                self._record(report, outcome, i, len(documents))

    def _run_parallel(self, documents: List[InputDocument], plan, report: BatchReport, output_dir: Path):
        if self._custom_factory:
            raise ConfigError("Parallel mode builds engines from ocr_backend, a custom engine factory is not supported")

        # fail fast on a bad backend path before spawning anything
        build_engine_factory(self.config.ocr_backend)

        ctx = mp.get_context("spawn")
        manager = SyncManager(ctx=ctx)
        manager.start(ignore_sigint)
        try:
            log_queue = manager.Queue(-1)
            listener = start_queue_listener(log_queue)
            try:
                self._drive_pool(ctx, log_queue, documents, plan, report, output_dir)
            finally:
                listener.stop()
        finally:
            manager.shutdown()

    def _drive_pool(self, ctx, log_queue, documents: List[InputDocument], plan, report: BatchReport, output_dir: Path):
        pool = ctx.Pool(
            processes=self.config.num_workers,
            initializer=initialize_worker,
            initargs=(
                log_queue,
                self.config.ocr_backend,
                self.config.backend_kwargs(),
                self.config.pdf_engine,
                self.config.scale,
                str(output_dir),
            ),
        )
        try:
            tasks = []
            for document in documents:
                output_path = plan.get(document.source_path)
                collision = document.source_path in plan and output_path is None
                tasks.append((document, str(output_path) if output_path else None, collision))

            results = pool.imap(process_in_worker, tasks)
            pbar = tqdm(results, total=len(tasks), desc="Processing files", unit="file",
                        disable=not self.config.show_progress)
            for i, outcome in enumerate(pbar, start=1):
                self._record(report, outcome, i, len(tasks))
                if self.shutdown_requested:
                    logger.info("Shutdown requested, terminating worker pool")
                    report.interrupted = len(report.outcomes) < len(tasks)
                    break
        except BaseException:
            pool.terminate()
            raise
        else:
            if self.shutdown_requested:
                pool.terminate()
            else:
                pool.close()
        finally:
            pool.join()
            logger.info("Worker pool has been shut down.")

    # -----------------------------
    # Public entry point
    # -----------------------------
    def run(self, handle_signals: bool = False) -> BatchReport:
        output_dir = self.prepare_output_dir()
        documents = self.scan_input_dir()
        plan = plan_output_paths(documents, output_dir, self.config.collision_policy)

        report = BatchReport(input_dir=str(self.config.input_dir), output_dir=str(output_dir))
        logger.info("Run started")

        previous_handlers = self._install_signal_handlers() if handle_signals else {}
        try:
            if self.config.num_workers > 1:
                self._run_parallel(documents, plan, report, output_dir)
            else:
                self._run_sequential(documents, plan, report, output_dir)
        finally:
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)

        logger.info("Run finished")
        self._log_summary(report)
        return report


def run_batch(input_dir, output_dir, engine_factory: Optional[EngineFactory] = None,
              pdf_processor: Optional[BasePDFProcessor] = None, **options) -> BatchReport:
    """Convenience wrapper: build a config from keyword options and run one batch."""
    config = OCRConfig.from_dict({"input_dir": input_dir, "output_dir": output_dir, **options})
    return BatchRunner(config, engine_factory=engine_factory, pdf_processor=pdf_processor).run()
