"""Database layer for phoneledger application."""

from phoneledger.database.base import Database
from phoneledger.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
