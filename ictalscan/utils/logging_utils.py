"""
Per-run log files.

Each analysis run logs through 'ictal.<run_name>'. When a directory is given the
logger writes '<run_name>_<YYYYmmdd_HHMMSS>.log' there and stops propagating;
release_run_logger() closes that file once the run is over.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

RUN_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def _logger_name(run_name: str) -> str:
    return str(run_name).strip().replace(" ", "_") or "run"


def _file_handlers(logger: logging.Logger) -> List[logging.FileHandler]:
    return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def get_run_logger(run_name: str, *, output_dir: Optional[Union[str, Path]] = "logs") -> logging.Logger:
    """
    Logger for one analysis run.

    output_dir=None: no file; records propagate to the root logger.
    A logger already writing into output_dir is returned as is. One still
    writing into a different directory is released and re-pointed.
    """
    name = _logger_name(run_name)
    logger = logging.getLogger(f"ictal.{name}")
    if output_dir is None:
        return logger

    out_dir = Path(os.path.abspath(Path(output_dir).expanduser()))
    current = _file_handlers(logger)
    if current and all(Path(h.baseFilename).parent == out_dir for h in current):
        return logger
    release_run_logger(logger)

    out_dir.mkdir(parents=True, exist_ok=True)
    log_path = out_dir / f"{name}_{datetime.now():%Y%m%d_%H%M%S}.log"
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(RUN_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.info("log_file=%s", str(log_path))
    return logger


def log_section(logger: logging.Logger, title: Optional[str] = None, *, width: int = 72) -> None:
    """Banner separating the phases of a run log."""
    rule = "=" * int(width)
    for line in ([rule, str(title), rule] if title else [rule]):
        logger.info("%s", line)


def release_run_logger(logger: logging.Logger) -> None:
    """Close and detach the file handlers attached by get_run_logger."""
    for handler in _file_handlers(logger):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
