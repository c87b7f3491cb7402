"""Database factory functions for creating database instances."""

from typing import Optional

from phoneledger.config import Settings, load_settings
from phoneledger.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None, settings: Optional[Settings] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks PHONELEDGER_DB_PATH
            environment variable, then defaults to ~/.phoneledger/phoneledger.db
        settings: Preloaded settings; built from the environment when omitted

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if settings is None:
        settings = load_settings(database_path=database_path)
    elif database_path is not None:
        settings = Settings(
            database_path=database_path,
            max_attempts=settings.max_attempts,
            strict_inventory=settings.strict_inventory,
        )

    database_url = f"sqlite:///{settings.database_path}"
    return SQLAlchemyDatabase(database_url, max_attempts=settings.max_attempts)
