"""Storage layer."""

from regwatch.storage.database import Database, close_database, get_database, init_database

__all__ = ["Database", "close_database", "get_database", "init_database"]
