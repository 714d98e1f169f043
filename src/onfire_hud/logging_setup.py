# src/onfire_hud/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

PACKAGE_LOGGER = "onfire_hud"

# Package loggers that talk too much for an interactive console.
QUIET_LOGGERS = (
    "onfire_hud.tasks.task_cache",
    "onfire_hud.api.",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the REPL is waiting for input.

    The file log still gets everything; this only gates the console handler.
    """

    def __init__(self, quiet: Iterable[str] = QUIET_LOGGERS) -> None:
        super().__init__()
        self._quiet = tuple(quiet)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
            if name.startswith(self._quiet):
                return record.levelno >= logging.WARNING
            return True
        # py.warnings, httpx, httpcore, anything else.
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/onfire",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    file_name: str = "onfire-hud.log",
) -> Path:
    """
    Console (filtered, stderr) + file (full) logging on the root logger.

    Call once, before the first log line. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / file_name

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())

    to_file = logging.FileHandler(str(log_file), encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(fmt)

    root.addHandler(console)
    root.addHandler(to_file)
    logging.captureWarnings(True)

    # httpx logs every request line at INFO.
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log_file
