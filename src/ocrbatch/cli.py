# src/ocrbatch/cli.py
from __future__ import annotations

import argparse
import ast
import json
import logging
import re
import sys
from pathlib import Path
from typing import List, Optional

from .config import COLLISION_POLICIES, DEFAULT_OCR_BACKEND, OCRConfig
from .engine import build_engine_factory, normalize_backend_alias
from .exceptions import OCRBatchError
from .logger import setup_logging
from .models import BatchReport
from .runner import BatchRunner

__all__ = ["run_pipeline", "exit_code_for", "main"]

logger = logging.getLogger("ocrbatch")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_PARTIAL_FAILURE = 3
EXIT_INTERRUPTED = 130


# Helpers

def _parse_backend_kwargs(val) -> dict:
    """
    Accept several syntaxes for --ocr-backend-kwargs:
      1) JSON (double quotes)                      {"languages":["en","de"],"psm":6}
      2) JSON wrapped in single quotes             '{"languages":["en","de"],"psm":6}'
      3) Python-literal dict with single quotes    {'languages': ['en','de'], 'psm': 6}
      4) key=value pairs separated by ;            languages=en,de;psm=6
    """
    if isinstance(val, dict):
        return dict(val)
    if not isinstance(val, str):
        return {}

    s = val.strip()
    if not s:
        return {}
    # Strip outer quotes like '"{...}"' or "'{...}'"
    if len(s) >= 2 and s[0] in ("'", '"') and s[-1] == s[0]:
        s = s[1:-1].strip()

    try:
        parsed = json.loads(s)
        if isinstance(parsed, dict):
            return parsed
    except ValueError:
        pass

    try:
        lit = ast.literal_eval(s)
        if isinstance(lit, dict):
            return lit
    except (ValueError, SyntaxError):
        pass

    # Fallback: key=value pairs
    out: dict = {}
    for part in re.split(r";\s*", s):
        if "=" not in part:
            continue
        k, v = part.split("=", 1)
        k = k.strip().strip('"\'')
        v = v.strip().strip('"\'')

        # List support like en,de
        if "," in v:
            out[k] = [x.strip() for x in v.split(",") if x.strip()]
            continue

        low = v.lower()
        if low in ("true", "false"):
            out[k] = (low == "true")
        elif re.fullmatch(r"-?\d+", v):
            out[k] = int(v)
        elif re.fullmatch(r"-?\d+\.\d*", v):
            out[k] = float(v)
        else:
            out[k] = v

    if out:
        return out

    raise SystemExit(f"Invalid --ocr-backend-kwargs. Could not parse: {val!r}")


def _normalize_common_backend_kwargs(d: dict) -> dict:
    """
    Backend-agnostic cleanup:
      - hyphen-case -> snake_case
      - lowercase keys
      - normalize languages: 'lang' -> 'languages', and "en,de" -> ["en","de"]
    """
    if not d:
        return {}
    out = {}
    for k, v in d.items():
        out[k.strip().lower().replace("-", "_")] = v

    if "languages" not in out and "lang" in out:
        out["languages"] = out.pop("lang")
    if "languages" in out:
        langs = out["languages"]
        if isinstance(langs, str):
            out["languages"] = [s.strip() for s in langs.split(",") if s.strip()]
        elif isinstance(langs, (set, tuple)):
            out["languages"] = list(langs)
    return out


def exit_code_for(report: BatchReport) -> int:
    if report.interrupted:
        return EXIT_INTERRUPTED
    if report.failed:
        return EXIT_PARTIAL_FAILURE
    return EXIT_OK


def run_pipeline(config: OCRConfig, handle_signals: bool = False) -> BatchReport:
    """
    Log the run settings and run one batch.
    """
    logger.info("Starting ocrbatch")
    logger.info("Input directory: %s", config.input_dir)
    logger.info("Output directory: %s", config.output_dir)
    logger.info(
        "Backend: %s | workers: %s | scale: %s | collisions: %s",
        config.ocr_backend, config.num_workers, config.scale, config.collision_policy,
    )

    report = BatchRunner(config).run(handle_signals=handle_signals)
    logger.info("ocrbatch processing complete")
    return report


# -------------------------------
# CLI parsing
# -------------------------------

def _build_run_parser(subparsers: argparse._SubParsersAction | argparse.ArgumentParser) -> argparse.ArgumentParser:
    """
    Build the 'run' parser. If 'subparsers' is the root parser,
    this also works for legacy (no-subcommand) mode.
    """
    if isinstance(subparsers, argparse.ArgumentParser):
        p = subparsers
    else:
        p = subparsers.add_parser("run", help="OCR every document in a directory into .txt files")

    # Core I/O
    p.add_argument("-i", "--input-dir", type=Path, default=Path("input"),
                   help="Directory containing files to OCR (default: ./input)")
    p.add_argument("-o", "--output-dir", type=Path, default=Path("output"),
                   help="Directory for the .txt outputs, created if missing (default: ./output)")
    p.add_argument("--error-log-path", type=Path, help="Append per-file failures to this JSONL file")

    # Selection and naming
    p.add_argument("--no-sort", dest="sort_inputs", action="store_false",
                   help="Process files in directory listing order instead of by name")
    p.add_argument("--collision-policy", choices=COLLISION_POLICIES, default="disambiguate",
                   help="What to do when two inputs share a base name (default: disambiguate)")

    # Runtime
    p.add_argument("-w", "--workers", type=int, default=1,
                   help="Worker processes, each with its own OCR engine (default: 1)")
    p.add_argument("-s", "--scale", type=float, default=2.0, help="PDF rasterization scale factor (default: 2.0)")
    p.add_argument("--pdf-engine", type=str, default="pymupdf", choices=["pymupdf"],
                   help="Underlying engine for PDF rasterization")

    # OCR behavior
    p.add_argument("-l", "--languages", nargs="+", default=["en"], help="Language codes for OCR")
    p.add_argument("--ocr-backend", type=str, default=DEFAULT_OCR_BACKEND,
                   help="Backend alias (tesseract, easyocr) or dotted path to an OCR backend class")
    p.add_argument(
        "--ocr-backend-kwargs",
        type=str,
        default="{}",
        help=('Backend init kwargs as JSON or key=value pairs, e.g. '
              '\'{"psm":6,"oem":1}\'  or  psm=6;oem=1'),
    )

    # Logging
    log_group = p.add_argument_group("Logging")
    log_group.add_argument("--log-file", type=Path, help="Also write logs to this file")
    log_group.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    log_group.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    log_group.add_argument("--no-progress", dest="show_progress", action="store_false",
                           help="Disable the progress bar")

    return p


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ocrbatch", description="ocrbatch: batch OCR of images and PDFs into text files")
    subparsers = parser.add_subparsers(dest="command")
    _build_run_parser(subparsers)

    if argv is None:
        argv = sys.argv[1:]
    # Legacy mode: no subcommand means 'run'
    if not argv or argv[0] not in {"run", "-h", "--help"}:
        legacy_parser = argparse.ArgumentParser(prog="ocrbatch")
        _build_run_parser(legacy_parser)
        args = legacy_parser.parse_args(argv)
        args.command = "run"
        return args

    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> OCRConfig:
    backend = normalize_backend_alias(args.ocr_backend)
    # fail fast with a clear message
    build_engine_factory(backend)

    backend_kwargs = _normalize_common_backend_kwargs(_parse_backend_kwargs(args.ocr_backend_kwargs))

    cfg_dict = {
        "input_dir": args.input_dir,
        "output_dir": args.output_dir,
        "error_log_path": args.error_log_path,
        "scale": args.scale,
        "pdf_engine": args.pdf_engine,
        "languages": args.languages,
        "ocr_backend": backend,
        "ocr_backend_kwargs": backend_kwargs,
        "sort_inputs": args.sort_inputs,
        "collision_policy": args.collision_policy,
        "num_workers": args.workers,
        "show_progress": args.show_progress,
    }
    return OCRConfig.from_dict(cfg_dict)


# -------------------------------
# Entry points
# -------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logging(level=level, file_path=args.log_file)

    try:
        config = _config_from_args(args)
        report = run_pipeline(config, handle_signals=True)
    except OCRBatchError as e:
        logger.error("Fatal: %s", e)
        return EXIT_FATAL

    return exit_code_for(report)


if __name__ == "__main__":
    sys.exit(main())
