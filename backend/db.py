"""
Database helpers shared across queries and routers.
No analysis logic lives here — only I/O primitives.
"""
import sqlite3
from pathlib import Path

from config import get_settings

# thread payloads are stored verbatim as JSON; the store never reshapes them
DDL = """
CREATE TABLE IF NOT EXISTS threads (
    position    INTEGER PRIMARY KEY AUTOINCREMENT,
    thread_id   TEXT,
    tq_name     TEXT NOT NULL DEFAULT '',
    payload     TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_threads_tq_name ON threads(tq_name);

CREATE TABLE IF NOT EXISTS edges (
    source_id   TEXT NOT NULL,
    target_id   TEXT NOT NULL,
    label       TEXT NOT NULL DEFAULT 'connected_to'
);
CREATE INDEX IF NOT EXISTS idx_edges_source ON edges(source_id);

CREATE TABLE IF NOT EXISTS sources (
    code        TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    status      TEXT NOT NULL DEFAULT 'active',
    version     TEXT NOT NULL DEFAULT '',
    api_endpoint TEXT
);
"""


def row_to_dict(row) -> dict:
    return dict(row)


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Open a store connection, creating the schema on first use."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.executescript(DDL)
    return conn


def get_db() -> sqlite3.Connection:
    # A missing store is an empty store, not an error; analyses return empty results.
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return connect(settings.db_path)
