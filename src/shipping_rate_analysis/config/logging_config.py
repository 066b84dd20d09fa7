from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

# Set on loggers this module has configured.
_SRA_LOGGER_MARK = "_sra_logger_configured"

_DEFAULT_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def _coerce_level(level: Optional[Union[int, str]]) -> int:
    """int or name ('INFO', 'debug'); falls back to LOG_LEVEL, then INFO."""
    if level is None:
        level = os.getenv("LOG_LEVEL") or None
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        return _LEVELS.get(level.strip().upper(), logging.INFO)
    return logging.INFO


def default_log_path_for_input(input_path: Union[str, Path]) -> Path:
    """/path/shipments.csv -> /path/shipments.log"""
    return Path(input_path).with_suffix(".log")


def _has_console(logger: logging.Logger) -> bool:
    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            if getattr(h, "stream", None) in (sys.stderr, sys.stdout):
                return True
    return False


def _has_file(logger: logging.Logger, path: Path) -> bool:
    for h in logger.handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(path):
            return True
    return False


def get_logger(
    name: Optional[str] = None,
    *,
    level: Optional[Union[int, str]] = None,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    propagate: bool = False,
    fmt: str = _DEFAULT_FMT,
    datefmt: str = _DEFAULT_DATEFMT,
    max_bytes: int = 5_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create or extend a logger. Repeated calls never duplicate handlers but
    will add a target that is missing (e.g. a file added later).
    """
    logger = logging.getLogger(name)
    logger.setLevel(_coerce_level(level))
    logger.propagate = propagate

    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    if console and not _has_console(logger):
        sh = logging.StreamHandler(stream=sys.stderr)
        sh.setFormatter(formatter)
        sh.setLevel(logger.level)
        logger.addHandler(sh)

    if log_file is not None:
        log_path = Path(log_file)
        if not _has_file(logger, log_path):
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
                delay=True,
            )
            fh.setFormatter(formatter)
            fh.setLevel(logger.level)
            logger.addHandler(fh)

    setattr(logger, _SRA_LOGGER_MARK, True)
    return logger


__all__ = ["get_logger", "default_log_path_for_input"]
