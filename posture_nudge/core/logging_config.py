"""Logging configuration using loguru."""
from __future__ import annotations

from pathlib import Path

from loguru import logger


def setup_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(lambda msg: print(msg, end=""), level=level)


def add_file_sink(log_dir: str | Path, level: str = "INFO") -> int:
    """Attach a rotating file sink under ``log_dir`` and return its handler id."""
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    return logger.add(
        path / "posture_nudge.log",
        level=level,
        rotation="5 MB",
        retention="7 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )
