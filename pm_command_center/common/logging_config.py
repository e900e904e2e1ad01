from __future__ import annotations

import logging
from pathlib import Path
from typing import Final


DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int | str = logging.INFO, log_dir: str | None = None) -> None:
    """Configure standard library logging for the CLI, API server and refresh loop.

    If log_dir is provided, logs are written to '<log_dir>/run.log' as well
    as stderr, which keeps a record of long-running auto-refresh sessions.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        Path(log_dir).expanduser().mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(Path(log_dir).expanduser() / "run.log", encoding="utf-8")
        )

    logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT, handlers=handlers, force=True)
