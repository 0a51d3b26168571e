"""
Shared fixtures and builders for the dashboard engine tests.

Everything is synthetic: threads are built in memory and the store is a
throwaway SQLite file under tmp_path. No running server or graph database
required; route tests go through FastAPI's TestClient with the in-process
graph executor.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from config import get_settings
from db import connect
from queries.schema import get_schema_cache
from queries.sources import DEFAULT_SOURCES, upsert_sources
from queries.threads import insert_edges, insert_threads


# ── builders ──────────────────────────────────────────────────────────────────

def make_node(node_id, type_=None, class_=None, function_name=None, description=None, **extra):
    record = {"id": node_id}
    if type_ is not None:
        record["type"] = type_
    if class_ is not None:
        record["class"] = class_
    if function_name is not None:
        record["functionName"] = function_name
    if description is not None:
        record["description"] = description
    record.update(extra)
    return record


def make_thread(thread_id, tq_name, *nodes):
    return {
        "threadId":      thread_id,
        "tqName":        tq_name,
        "componentNode": [{"node": list(nodes)}],
    }


def sample_threads():
    """
    SCR: HH@id@934, HH@id@935  (near-identical header validators)
    TMC: TX@id@12, TX@id@13    (near-identical committers)
    NVL: NET@id@7
    """
    return [
        make_thread(
            "T1", "SCR_mb.SCR_mb",
            make_node("HH@id@934", "HH", "Header", "validateHeader", "Validates message header", owner="team-a"),
            make_node("HH@id@935", "HH", "Header", "validateHeaders", "Validates message headers"),
        ),
        make_thread(
            "T2", "TMC_core.TMC",
            make_node("TX@id@12", "TX", "Transaction", "commitTx", "Commits a transaction"),
            make_node("TX@id@13", "TX", "Transaction", "commitTxn", "Commits transactions"),
        ),
        make_thread(
            "T3", "NVL.routes",
            make_node("NET@id@7", "NET", "Router", "routePacket", "Routes packets"),
        ),
    ]


def sample_edges():
    return [
        {"source": "HH@id@934", "target": "TX@id@12"},
        {"source": "HH@id@935", "target": "TX@id@12"},
        {"source": "HH@id@934", "target": "NET@id@7"},
        {"source": "HH@id@935", "target": "NET@id@7"},
        {"source": "TX@id@12",  "target": "TX@id@13"},
    ]


# ── fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def threads():
    return sample_threads()


@pytest.fixture
def conn():
    c = connect(":memory:")
    yield c
    c.close()


@pytest.fixture
def store(tmp_path, monkeypatch):
    """Empty file store; settings point at it for the duration of the test."""
    monkeypatch.setenv("DASHBOARD_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DASHBOARD_DB", "test.db")
    monkeypatch.delenv("GRAPH_URL", raising=False)
    monkeypatch.delenv("SCHEMA_URL", raising=False)
    get_settings.cache_clear()
    get_schema_cache.cache_clear()

    c = connect(get_settings().db_path)
    yield c
    c.close()
    get_settings.cache_clear()
    get_schema_cache.cache_clear()


@pytest.fixture
def seeded_store(store):
    upsert_sources(store, DEFAULT_SOURCES)
    insert_threads(store, sample_threads())
    insert_edges(store, sample_edges())
    return store


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient
    from main import app
    return TestClient(app)
