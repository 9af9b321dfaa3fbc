"""
Database connection management.

Provides SQLite connections for the usage ledger.
"""

import sqlite3
from pathlib import Path


DEFAULT_DB_PATH = "ai_writing_assistant.db"


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open a SQLite connection.

    A fresh connection per call keeps each ledger access independent, so
    calls may run on worker threads.
    """
    path = Path(db_path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=5.0)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
