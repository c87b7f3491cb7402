"""Runtime settings loaded from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_MAX_ATTEMPTS = 5

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for a ledger session."""

    database_path: str
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    strict_inventory: bool = False
    log_dir: Optional[str] = None


def default_database_path() -> str:
    """Return ~/.phoneledger/phoneledger.db, creating the directory."""
    db_dir = Path.home() / ".phoneledger"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "phoneledger.db")


def default_log_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return PHONELEDGER_LOG_DIR, or ~/.phoneledger/logs when unset."""
    if environ is None:
        environ = os.environ
    configured = environ.get("PHONELEDGER_LOG_DIR", "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".phoneledger" / "logs"


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    database_path: Optional[str] = None,
    strict_inventory: Optional[bool] = None,
) -> Settings:
    """Build settings from environment variables and explicit overrides.

    Args:
        environ: Mapping to read from (defaults to os.environ)
        database_path: Overrides PHONELEDGER_DB_PATH when given
        strict_inventory: Overrides PHONELEDGER_STRICT_INVENTORY when given

    Returns:
        Settings instance

    Raises:
        ValueError: If PHONELEDGER_MAX_ATTEMPTS is not a positive integer
    """
    if environ is None:
        environ = os.environ

    if database_path is None:
        database_path = environ.get("PHONELEDGER_DB_PATH")
    if database_path is None:
        database_path = default_database_path()

    raw_attempts = environ.get("PHONELEDGER_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))
    try:
        max_attempts = int(raw_attempts)
    except ValueError:
        raise ValueError(f"PHONELEDGER_MAX_ATTEMPTS must be an integer, got '{raw_attempts}'")
    if max_attempts < 1:
        raise ValueError("PHONELEDGER_MAX_ATTEMPTS must be at least 1")

    if strict_inventory is None:
        strict_inventory = environ.get("PHONELEDGER_STRICT_INVENTORY", "").strip().lower() in _TRUTHY

    return Settings(
        database_path=database_path,
        max_attempts=max_attempts,
        strict_inventory=strict_inventory,
        log_dir=str(default_log_dir(environ)),
    )
