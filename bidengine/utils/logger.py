"""
Logging for bidengine.

Every module asks for a child of the ``bidengine`` logger
(``bidengine.placement``, ``bidengine.storage.sqlite``...). Console output
is colored with colorlog and goes to stderr so command output on stdout
stays machine readable; a plain-text log file is optional.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import colorlog

if TYPE_CHECKING:
    from bidengine.core.config import EngineConfig


ROOT_LOGGER = "bidengine"
LOG_FILE_NAME = "bidengine.log"

CONSOLE_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

LEVEL_COLORS = {
    "DEBUG": "blue",
    "INFO": "white",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


class EngineLogger:
    """Owns the handlers attached to the ``bidengine`` logger"""

    _configured = False
    _log_file: Optional[Path] = None

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        force: bool = False,
    ):
        """
        Attach console (and optionally file) handlers.

        Args:
            level: Threshold for every handler
            log_dir: Where the log file goes, default ./logs
            log_to_file: Also write to ``<log_dir>/bidengine.log``
            force: Replace handlers installed by an earlier call
        """
        if cls._configured and not force:
            return

        root = logging.getLogger(ROOT_LOGGER)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)
        root.propagate = False

        console = colorlog.StreamHandler(sys.stderr)
        console.setFormatter(colorlog.ColoredFormatter(
            CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors=LEVEL_COLORS,
        ))
        root.addHandler(console)

        cls._log_file = None
        if log_to_file:
            directory = Path(log_dir) if log_dir else Path("logs")
            directory.mkdir(parents=True, exist_ok=True)
            cls._log_file = directory / LOG_FILE_NAME
            file_handler = logging.FileHandler(cls._log_file, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            root.addHandler(file_handler)

        cls._configured = True

    @classmethod
    def set_level(cls, level: int):
        logging.getLogger(ROOT_LOGGER).setLevel(level)

    @classmethod
    def log_file(cls) -> Optional[Path]:
        return cls._log_file

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_logger(name: str) -> logging.Logger:
    """Logger for one subsystem, e.g. ``get_logger("placement")``"""
    return EngineLogger.get_logger(name)


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
):
    """Configure logging once; later calls only adjust the level."""
    if EngineLogger._configured:
        EngineLogger.set_level(level)
        return
    EngineLogger.configure(level=level, log_dir=log_dir, log_to_file=log_to_file)


def setup_from_config(cfg: "EngineConfig"):
    """Apply the logging section of an EngineConfig."""
    EngineLogger.configure(
        level=cfg.log_level,
        log_dir=str(cfg.log_dir),
        log_to_file=cfg.log_to_file,
        force=True,
    )
