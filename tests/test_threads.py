"""
Tests for queries/threads.py, queries/sources.py and seed.py against an
in-memory (or tmp_path) SQLite store.
"""
import json

from conftest import make_node, make_thread, sample_edges, sample_threads
from analytics.models import count_by_source
from db import connect
from queries.sources import DEFAULT_SOURCES, fetch_sources, upsert_sources
from queries.threads import (
    clear_store,
    count_store,
    fetch_edges,
    fetch_threads,
    find_node_by_id,
    insert_edges,
    insert_threads,
)
from seed import load_payload, seed


class TestFetchThreads:
    def test_empty_store(self, conn):
        assert fetch_threads(conn) == []
        assert find_node_by_id(conn, "HH@id@934") is None

    def test_round_trip_keeps_order(self, conn):
        insert_threads(conn, sample_threads())
        assert [t["threadId"] for t in fetch_threads(conn)] == ["T1", "T2", "T3"]
        assert fetch_threads(conn) == sample_threads()

    def test_prefix_filter(self, conn):
        insert_threads(conn, sample_threads())
        assert [t["threadId"] for t in fetch_threads(conn, prefix="TMC")] == ["T2"]
        assert fetch_threads(conn, prefix="XYZ") == []

    def test_unreadable_payload_skipped(self, conn):
        insert_threads(conn, [make_thread("T1", "SCR_a", make_node("HH@id@1"))])
        conn.execute("INSERT INTO threads (thread_id, tq_name, payload) VALUES ('bad', '', '{not json')")
        assert [t["threadId"] for t in fetch_threads(conn)] == ["T1"]

    def test_find_node_by_id(self, conn):
        insert_threads(conn, sample_threads())
        node = find_node_by_id(conn, "TX@id@13")
        assert node.function_name == "commitTxn"


class TestStoreCounts:
    def test_count_store(self, conn):
        insert_threads(conn, sample_threads())
        insert_edges(conn, sample_edges())
        assert count_store(conn) == {"threads": 3, "nodes": 5, "edges": 5}

    def test_clear(self, conn):
        insert_threads(conn, sample_threads())
        insert_edges(conn, sample_edges())
        clear_store(conn)
        assert count_store(conn) == {"threads": 0, "nodes": 0, "edges": 0}

    def test_edge_label_default(self, conn):
        insert_edges(conn, [{"source": "A", "target": "B"}, {"source": "B", "target": "C", "label": "calls"}])
        assert [e["label"] for e in fetch_edges(conn)] == ["connected_to", "calls"]

    def test_count_by_source(self):
        counts = count_by_source(sample_threads())
        assert counts == {
            "SCR": {"threads": 1, "nodes": 2},
            "TMC": {"threads": 1, "nodes": 2},
            "NVL": {"threads": 1, "nodes": 1},
        }


class TestSources:
    def test_upsert_is_idempotent(self, conn):
        upsert_sources(conn, DEFAULT_SOURCES)
        upsert_sources(conn, [{"code": "STC", "name": "System Truth Cache", "status": "maintenance"}])
        sources = fetch_sources(conn)
        assert len(sources) == 6
        stc = next(s for s in sources if s["code"] == "STC")
        assert stc["status"] == "maintenance"

    def test_sorted_by_code(self, conn):
        upsert_sources(conn, DEFAULT_SOURCES)
        assert [s["code"] for s in fetch_sources(conn)] == ["CAS", "CPT", "NVL", "SLC", "STC", "TMC"]


class TestSeed:
    def test_load_payload_list(self, tmp_path):
        path = tmp_path / "threads.json"
        path.write_text(json.dumps(sample_threads()))
        threads, edges = load_payload(path)
        assert len(threads) == 3
        assert edges == []

    def test_load_payload_object(self, tmp_path):
        path = tmp_path / "threads.json"
        path.write_text(json.dumps({"threads": sample_threads(), "edges": sample_edges()}))
        threads, edges = load_payload(path)
        assert len(edges) == 5

    def test_seed_and_reset(self, tmp_path):
        db_path = tmp_path / "store.db"
        seed(db_path, sample_threads(), sample_edges())
        counts = seed(db_path, sample_threads()[:1], reset=True)
        assert counts == {"sources": 6, "threads": 1, "edges": 0}

        conn = connect(db_path)
        assert count_store(conn) == {"threads": 1, "nodes": 2, "edges": 0}
        assert len(fetch_sources(conn)) == 6
        conn.close()
