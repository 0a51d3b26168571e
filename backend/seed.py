"""
Thread store import.

Loads thread records (and optionally the edges between their nodes) from a
JSON file into the SQLite store, and registers the default sources of truth.

Usage:
    python3 seed.py threads.json
    python3 seed.py threads.json --reset      # clear threads and edges first
    python3 seed.py --sources-only            # just register the sources

Input is either a bare list of threads or an object:
    {"threads": [{threadId, tqName, componentNode: [...]}, ...],
     "edges":   [{"source": "HH@id@934", "target": "TX@id@12", "label": "calls"}, ...]}
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from config import get_settings
from db import connect
from queries.sources import DEFAULT_SOURCES, upsert_sources
from queries.threads import clear_store, insert_edges, insert_threads

logger = logging.getLogger(__name__)


def load_payload(path: Path) -> tuple[list[dict], list[dict]]:
    raw = json.loads(path.read_text())
    if isinstance(raw, list):
        return raw, []
    if isinstance(raw, dict):
        return list(raw.get("threads") or []), list(raw.get("edges") or [])
    raise ValueError(f"{path}: expected a list of threads or an object with 'threads'")


def seed(
    db_path: Path,
    threads: list[dict],
    edges:   list[dict] | None = None,
    reset:   bool = False,
) -> dict:
    conn = connect(db_path)
    try:
        if reset:
            clear_store(conn)
            logger.info("Cleared threads and edges in %s", db_path)
        n_sources = upsert_sources(conn, DEFAULT_SOURCES)
        n_threads = insert_threads(conn, threads)
        n_edges   = insert_edges(conn, edges or [])
    finally:
        conn.close()
    logger.info("Imported %d threads and %d edges into %s", n_threads, n_edges, db_path)
    return {"sources": n_sources, "threads": n_threads, "edges": n_edges}


# ── CLI ───────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(level=get_settings().log_level, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Import thread records into the dashboard store.")
    parser.add_argument("file", nargs="?", help="Path to a threads JSON file")
    parser.add_argument("--reset", action="store_true", help="Delete existing threads and edges first")
    parser.add_argument("--sources-only", action="store_true", help="Only register the default sources")
    parser.add_argument("--db", help="Store path (default: DASHBOARD_DATA_DIR/DASHBOARD_DB)")
    args = parser.parse_args()

    settings = get_settings()
    db_path = Path(args.db) if args.db else settings.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if args.sources_only:
        counts = seed(db_path, [], reset=args.reset)
    elif args.file:
        threads, edges = load_payload(Path(args.file))
        counts = seed(db_path, threads, edges, reset=args.reset)
    else:
        parser.print_help()
        raise SystemExit(1)
    print(f"{db_path}: {counts['threads']} threads, {counts['edges']} edges, {counts['sources']} sources")
