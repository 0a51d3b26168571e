"""
Thread store queries — DB I/O only.
"""
from __future__ import annotations

import json
import logging
import sqlite3

from analytics.models import Node, find_node, iter_thread_nodes

logger = logging.getLogger(__name__)


def fetch_threads(conn: sqlite3.Connection, prefix: str | None = None) -> list[dict]:
    """
    All stored threads in import order. prefix filters on tqName.startswith.

    An empty store is an empty list; a payload that is not valid JSON is
    logged and skipped.
    """
    rows = conn.execute("SELECT position, payload FROM threads ORDER BY position").fetchall()
    threads = []
    for row in rows:
        try:
            thread = json.loads(row["payload"])
        except json.JSONDecodeError:
            logger.warning("Skipping unreadable thread payload at position %s", row["position"])
            continue
        if prefix and not str(thread.get("tqName") or "").startswith(prefix):
            continue
        threads.append(thread)
    return threads


def find_node_by_id(conn: sqlite3.Connection, node_id: str) -> Node | None:
    return find_node(fetch_threads(conn), node_id)


def fetch_edges(conn: sqlite3.Connection) -> list[dict]:
    return [
        dict(r) for r in conn.execute("SELECT source_id, target_id, label FROM edges ORDER BY rowid")
    ]


def count_store(conn: sqlite3.Connection) -> dict:
    threads = fetch_threads(conn)
    return {
        "threads": len(threads),
        "nodes":   sum(1 for _ in iter_thread_nodes(threads)),
        "edges":   conn.execute("SELECT COUNT(*) AS n FROM edges").fetchone()["n"],
    }


def insert_threads(conn: sqlite3.Connection, threads: list[dict]) -> int:
    conn.executemany(
        "INSERT INTO threads (thread_id, tq_name, payload) VALUES (?, ?, ?)",
        [
            (t.get("threadId"), t.get("tqName") or "", json.dumps(t))
            for t in threads
        ],
    )
    conn.commit()
    return len(threads)


def insert_edges(conn: sqlite3.Connection, edges: list[dict]) -> int:
    conn.executemany(
        "INSERT INTO edges (source_id, target_id, label) VALUES (?, ?, ?)",
        [
            (e["source"], e["target"], e.get("label") or "connected_to")
            for e in edges
        ],
    )
    conn.commit()
    return len(edges)


def clear_store(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM threads")
    conn.execute("DELETE FROM edges")
    conn.commit()
