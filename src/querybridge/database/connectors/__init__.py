"""Engine implementations, one per supported database."""

from .mysql import MySQLEngine
from .postgresql import PostgresEngine
from .sqlite import SQLiteEngine

__all__ = [
    "MySQLEngine",
    "PostgresEngine",
    "SQLiteEngine",
]
