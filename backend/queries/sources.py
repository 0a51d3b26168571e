"""
Sources-of-truth registry queries — DB I/O only.
"""
from __future__ import annotations

import sqlite3

from db import row_to_dict

DEFAULT_SOURCES = [
    {"code": "STC", "name": "System Truth Cache",             "description": "Cached system-of-record state"},
    {"code": "CPT", "name": "Configuration Processing Tool",   "description": "Configuration processing and rollout"},
    {"code": "SLC", "name": "Service Layer Coordinator",       "description": "Service-layer orchestration"},
    {"code": "TMC", "name": "Transaction Management Center",   "description": "Transaction processing and tracking"},
    {"code": "CAS", "name": "Central Authentication Service",  "description": "Authentication and session management"},
    {"code": "NVL", "name": "Network Validation Layer",        "description": "Network validation and routing"},
]


def fetch_sources(conn: sqlite3.Connection) -> list[dict]:
    rows = conn.execute(
        "SELECT code, name, description, status, version, api_endpoint FROM sources ORDER BY code"
    ).fetchall()
    return [row_to_dict(r) for r in rows]


def upsert_sources(conn: sqlite3.Connection, sources: list[dict]) -> int:
    conn.executemany(
        """
        INSERT INTO sources (code, name, description, status, version, api_endpoint)
        VALUES (:code, :name, :description, :status, :version, :api_endpoint)
        ON CONFLICT(code) DO UPDATE SET
            name = excluded.name,
            description = excluded.description,
            status = excluded.status,
            version = excluded.version,
            api_endpoint = excluded.api_endpoint
        """,
        [
            {
                "code":         s["code"],
                "name":         s.get("name") or s["code"],
                "description":  s.get("description") or "",
                "status":       s.get("status") or "active",
                "version":      s.get("version") or "",
                "api_endpoint": s.get("api_endpoint"),
            }
            for s in sources
        ],
    )
    conn.commit()
    return len(sources)
