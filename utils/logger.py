"""
Logger Configuration
Rich console logging for the CLI, web server and run orchestrator
"""
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler


console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

LOG_DIR = Path(__file__).parent.parent / "logs"

# Top-level packages whose module loggers (getLogger(__name__)) share one setup.
PACKAGE_LOGGERS = ("rmd", "orchestrator", "storage", "sources", "webapp")


def _console_handler(level: int, use_rich: bool) -> logging.Handler:
    if use_rich:
        handler: logging.Handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def _file_handler(log_file: str, level: int) -> logging.Handler:
    path = Path(log_file)
    if not path.is_absolute():
        path = LOG_DIR / path
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logger(
    name: str = "rmd",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Attach console (and optional file) handlers to one logger.

    Args:
        name: logger name
        level: log level, also applied to an already configured logger
        log_file: file name under ``logs/``, or an absolute path
        use_rich: render console output through Rich

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.addHandler(_console_handler(level, use_rich))
    if log_file:
        logger.addHandler(_file_handler(log_file, level))
    return logger


def configure_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    names: Iterable[str] = PACKAGE_LOGGERS,
    use_rich: bool = True,
) -> logging.Logger:
    """Configure every package logger at DEBUG (verbose) or INFO; returns the ``rmd`` logger."""
    level = logging.DEBUG if verbose else logging.INFO
    for name in names:
        setup_logger(name, level=level, log_file=log_file, use_rich=use_rich)
    return logging.getLogger("rmd")

