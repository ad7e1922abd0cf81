"""Logging setup and timing helpers for the giro command line tools.

Library modules only log through named loggers (``giro.ingestion``);
handlers are attached here, by the report command on the ``giro`` logger:
  - console output
  - a file in ``paths.logs_dir`` (``logging.file_name``, default giro.log)

If the file handler cannot be attached, logging continues on the console.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict


SYSTEM_FMT = "[%(asctime)s] [%(levelname)s] %(message)s"
DEFAULT_LOG_FILE = "giro.log"


def _ensure_logs_dir(config: dict) -> Path:
    paths = (config or {}).get("paths", {})
    logs_dir = Path(paths.get("logs_dir", "logs")).expanduser().resolve()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _safe_add_file_handler(logger: logging.Logger, path: Path, fmt: str, level: int) -> None:
    try:
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(fmt))
        logger.addHandler(fh)
    except OSError as exc:  # pragma: no cover - depends on filesystem state
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)


def get_logger(name: str, config: dict) -> logging.Logger:
    """Return a logger with console + file handlers.

    - Level: ``logging.level`` from config (INFO by default)
    - File: ``logs_dir / logging.file_name``
    """
    log_cfg = (config or {}).get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    logs_dir = _ensure_logs_dir(config)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Reset handlers to avoid duplication across repeated initializations
    logger.handlers = []

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(SYSTEM_FMT))
    logger.addHandler(sh)

    _safe_add_file_handler(logger, logs_dir / log_cfg.get("file_name", DEFAULT_LOG_FILE), SYSTEM_FMT, level)
    return logger


def start_phase_timer(phase_name: str) -> float:
    """Start a timer for a named step and return the perf counter."""
    return time.perf_counter()


def end_phase_timer(phase_name: str, start_time: float, timing_dict: Dict[str, float], logger: logging.Logger) -> float:
    """Record the elapsed time for ``phase_name`` and log it."""
    elapsed = time.perf_counter() - float(start_time)
    timing_dict[phase_name] = elapsed
    logger.info("%s completed in %.2f seconds", phase_name, elapsed)
    return elapsed


def log_system_event(logger: logging.Logger, message: str):
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str):
    logger.warning("[WARNING] %s", message)


def log_error(logger: logging.Logger, message: str):
    logger.error("[ERROR] %s", message)
