"""Unified logging for mariadb-ws with console and file output."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Log records go to stderr so dump output on stdout stays clean
console = Console(stderr=True)

# Log file configuration
LOG_DIR = Path.home() / ".mariadb-ws" / "logs"
LOG_FILE = LOG_DIR / "mariadb-ws.log"

# Track if file logging has been set up
_file_logging_configured = False


def setup_file_logging(log_file: str = None, verbose: bool = False):
    """Set up file logging for mariadb-ws operations.

    Args:
        log_file: Path to log file (defaults to ~/.mariadb-ws/logs/mariadb-ws.log)
        verbose: Enable debug-level logging

    Note:
        Creates log directory if it doesn't exist.
        Falls back to /tmp if the home directory is not writable.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    target_log_file = Path(log_file) if log_file else LOG_FILE

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target_log_file = Path("/tmp/mariadb-ws.log")
        target_log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger("mariadb_ws")
    file_handler = logging.FileHandler(target_log_file)
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    file_formatter = logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True

    root_logger.info(f"mariadb-ws logging initialized: {target_log_file}")


def set_verbose(verbose: bool) -> None:
    """Switch every mariadb_ws logger between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("mariadb_ws").setLevel(level)
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("mariadb_ws") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance with console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler

    Note:
        File logging must be enabled separately via setup_file_logging()
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
