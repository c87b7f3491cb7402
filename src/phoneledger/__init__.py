import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from phoneledger.config import default_log_dir

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FILE_NAME = "phoneledger.log"


def _file_handler(log_dir: Path, formatter: logging.Formatter) -> Optional[logging.Handler]:
    log_file = log_dir / LOG_FILE_NAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
    except OSError as exc:
        print(f"Warning: unable to open ledger log at '{log_file}': {exc}", file=sys.stderr)
        return None
    handler.setLevel(logging.INFO)
    handler.setFormatter(formatter)
    return handler


def configure_logging(log_dir: Optional[Path] = None) -> logging.Logger:
    """Attach the ledger's file and stderr handlers to the package logger.

    Runs once per process; later calls return the configured logger.
    Reversals, retries and skipped inventory lines are written to
    ``<log_dir>/phoneledger.log``, while only warnings reach stderr.
    """
    logger = logging.getLogger(__name__)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler = _file_handler(log_dir or default_log_dir(), formatter)
    if handler is not None:
        logger.addHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING)
    console.setFormatter(formatter)
    logger.addHandler(console)
    return logger


log = configure_logging()


# Import main lazily to avoid circular dependencies
def __getattr__(name):
    if name == "main":
        from phoneledger.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
