"""
Unit tests for analytics/interpreter.py.

Routing is tested in isolation through classify(); handlers through
interpret() with a ChatContext built from the sample threads.
"""
import pytest

from conftest import sample_threads
from analytics.interpreter import (
    ChatContext,
    classify,
    extract_bare_type,
    extract_count_type,
    extract_function,
    extract_node_id,
    extract_search_term,
    extract_type,
    interpret,
)
from analytics.outcome import Degraded, Success
from analytics.structural import DependencyRecord
from queries.sources import DEFAULT_SOURCES


@pytest.fixture
def ctx():
    return ChatContext(
        threads=sample_threads(),
        sources=[dict(s, status="active") for s in DEFAULT_SOURCES],
    )


# ── classification ────────────────────────────────────────────────────────────

class TestClassify:
    @pytest.mark.parametrize("message,intent", [
        ("Find similar nodes to HH@id@934", "similarity"),
        ("Which nodes are alike?", "similarity"),
        ("show similarity for HH@id@934", "similarity"),
        ("are these similarly shaped", "similarity"),
        ("What's the impact of node HH@id@934?", "impact"),
        ("what would this change affect", "impact"),
        ("what depends on HH@id@934", "dependency"),
        ("show dependencies for TX@id@12", "dependency"),
        ("what is connected to NET@id@7", "dependency"),
        ("find type: HH", "node_search"),
        ("list all HH nodes", "node_search"),
        ("list type: HH", "node_search"),
        ("find sources of truth", "list_sources"),
        ("How many HH nodes", "node_count"),
        ("how many nodes are there", "node_count"),
        ("describe node HH@id@934", "node_describe"),
        ("show system status", "system_status"),
        ("health", "system_status"),
        ("list sources", "list_sources"),
        ("help", "help"),
        ("what commands do you know", "help"),
        ("hello there", "help"),
    ])
    def test_intents(self, message, intent):
        assert classify(message) == intent

    def test_similarity_beats_impact(self):
        assert classify("find similar nodes and their impact") == "similarity"

    def test_impact_beats_dependency(self):
        assert classify("impact on dependent systems") == "impact"

    def test_search_with_source_diverts(self):
        assert classify("search the sources") == "list_sources"


class TestExtraction:
    def test_node_id(self):
        assert extract_node_id("Find similar nodes to HH@id@934") == "HH@id@934"
        assert extract_node_id("What's the impact of node HH@id@934?") == "HH@id@934"

    def test_bare_number_resolved(self):
        assert extract_node_id("impact of 934", sample_threads()) == "HH@id@934"

    def test_bare_number_unresolved_kept(self):
        assert extract_node_id("impact of 555", sample_threads()) == "555"

    def test_no_id(self):
        assert extract_node_id("what is the impact?") is None

    def test_count_type(self):
        assert extract_count_type("How many HH nodes") == "HH"
        assert extract_count_type("how many nodes") is None

    def test_type_and_function(self):
        assert extract_type("find type: hh") == "HH"
        assert extract_function("search function: commitTx") == "commitTx"

    def test_search_term(self):
        assert extract_search_term("find nodes matching Router") == "Router"
        assert extract_search_term("search for type: HH") is None

    def test_bare_type(self):
        assert extract_bare_type("list all HH nodes") == "HH"
        assert extract_bare_type("list all nodes") is None
        assert extract_bare_type("list all hh nodes") is None


# ── handlers ──────────────────────────────────────────────────────────────────

class TestSimilarity:
    def test_finds_sibling(self, ctx):
        res = interpret("Find similar nodes to HH@id@934", context=ctx)
        assert res.analysis_type == "similarity"
        assert res.data["synthetic"] is False
        assert [r["node_id"] for r in res.data["results"]] == ["HH@id@935"]
        assert "HH@id@935" in res.response

    def test_missing_target_prompts(self, ctx):
        res = interpret("find similar things", context=ctx)
        assert res.data == {"needs_input": True}
        assert "node id" in res.response

    def test_demo_when_store_empty(self):
        res = interpret("Find similar nodes to HH@id@934", context=ChatContext())
        assert res.response.startswith("[Demo data]")
        assert res.data["synthetic"] is True
        assert all(r["node_id"].startswith("HH@id@") for r in res.data["results"])

    def test_demo_keeps_requested_type(self):
        res = interpret("find similar nodes type: HH", context=ChatContext())
        assert res.data["target"] == "HH"
        assert all(r["node_id"].startswith("HH@id@") for r in res.data["results"])

    def test_demo_is_deterministic(self):
        a = interpret("Find similar nodes to HH@id@934", context=ChatContext())
        b = interpret("Find similar nodes to HH@id@934", context=ChatContext())
        assert a.data == b.data


class TestImpact:
    def test_assessment(self, ctx):
        res = interpret("What's the impact of node HH@id@934?", context=ctx)
        assert res.analysis_type == "impact"
        assert res.data["target_node_id"] == "HH@id@934"
        assert res.data["impact_summary"]["total_affected_nodes"] == 2
        assert "LOW IMPACT" in res.response

    def test_unknown_node(self, ctx):
        res = interpret("impact of XX@id@1", context=ctx)
        assert "Node XX@id@1 not found" in res.response
        assert res.data == {"node_id": "XX@id@1", "found": False}

    def test_missing_id_prompts(self, ctx):
        res = interpret("what is the impact?", context=ctx)
        assert res.data == {"needs_input": True}

    def test_empty_store_is_not_found(self):
        res = interpret("impact of HH@id@934", context=ChatContext())
        assert res.data["found"] is False


class TestDependency:
    def test_lists_records(self, ctx):
        records = [DependencyRecord("TX@id@12", 1, ["HH@id@934", "TX@id@12"], "TX", "TMC")]
        ctx.dependencies = lambda node_id: Success(records)
        res = interpret("what depends on HH@id@934", context=ctx)
        assert res.analysis_type == "dependency"
        assert res.data["dependencies"][0]["node_id"] == "TX@id@12"
        assert res.data["outcome"]["status"] == "success"
        assert "1 downstream dependencies" in res.response

    def test_degraded(self, ctx):
        ctx.dependencies = lambda node_id: Degraded([], "graph down")
        res = interpret("what depends on HH@id@934", context=ctx)
        assert "unavailable" in res.response
        assert res.data["outcome"] == {"status": "degraded", "reason": "graph down"}

    def test_no_executor_is_empty(self, ctx):
        res = interpret("what depends on HH@id@934", context=ctx)
        assert res.data["dependencies"] == []
        assert res.data["outcome"]["status"] == "empty"

    def test_unknown_node(self, ctx):
        res = interpret("what depends on ZZ@id@9", context=ctx)
        assert res.data["found"] is False

    def test_demo_when_store_empty(self):
        res = interpret("what depends on HH@id@934", context=ChatContext())
        assert res.response.startswith("[Demo data]")
        assert res.data["synthetic"] is True
        distances = [d["distance"] for d in res.data["dependencies"]]
        assert distances == sorted(distances)
        assert distances and distances[0] == 1


class TestSearch:
    def test_by_type(self, ctx):
        res = interpret("find type: HH", context=ctx)
        assert res.data["total"] == 2

    def test_by_function(self, ctx):
        res = interpret("search function: commit", context=ctx)
        assert [r["id"] for r in res.data["results"]] == ["TX@id@12", "TX@id@13"]

    def test_by_term(self, ctx):
        res = interpret("find nodes matching router", context=ctx)
        assert [r["id"] for r in res.data["results"]] == ["NET@id@7"]
        assert res.data["results"][0]["source_code"] == "NVL"

    def test_scoped_to_source(self, ctx):
        res = interpret("find type: HH", source_code="TMC", context=ctx)
        assert res.data["total"] == 0
        assert "in TMC" in res.response

    def test_list_by_type_keyword(self, ctx):
        res = interpret("list type: HH", context=ctx)
        assert res.analysis_type == "node_search"
        assert [r["id"] for r in res.data["results"]] == ["HH@id@934", "HH@id@935"]

    def test_bare_type_before_nodes(self, ctx):
        res = interpret("list all HH nodes", context=ctx)
        assert res.data["criteria"] == {"type": "HH"}
        assert [r["id"] for r in res.data["results"]] == ["HH@id@934", "HH@id@935"]

    def test_no_criteria_prompts(self, ctx):
        res = interpret("list all nodes", context=ctx)
        assert res.data == {"needs_input": True}


class TestCount:
    def test_by_type(self, ctx):
        res = interpret("How many HH nodes", context=ctx)
        assert res.analysis_type == "node_count"
        assert res.data["requested_type"] == "HH"
        assert res.data["count"] == 2
        assert res.response == "There are 2 HH nodes."

    def test_all_scoped(self, ctx):
        res = interpret("how many nodes", source_code="TMC", context=ctx)
        assert res.data["count"] == 2
        assert res.data["by_type"] == {"TX": 2}

    def test_demo_when_store_empty(self):
        res = interpret("How many HH nodes", context=ChatContext())
        assert res.response.startswith("[Demo data]")
        assert res.data["synthetic"] is True
        assert res.data["count"] == res.data["by_type"]["HH"]


class TestGeneral:
    def test_describe(self, ctx):
        res = interpret("describe node HH@id@934", context=ctx)
        assert res.analysis_type == "node_describe"
        assert "• Type: HH" in res.response
        assert "• Source: SCR (thread T1)" in res.response
        assert "• owner: team-a" in res.response

    def test_describe_unknown(self, ctx):
        assert interpret("describe node ZZ@id@1", context=ctx).data["found"] is False

    def test_status(self, ctx):
        ctx.graph_counts = lambda: {"vertices": 5, "edges": 5}
        res = interpret("system status", context=ctx)
        assert res.data["total"] == 6
        assert res.data["healthy"] == 6
        assert res.data["nodes"] == 5
        assert "5 vertices, 5 edges" in res.response
        assert "System Health: Good" in res.response

    def test_status_degraded_sources(self, ctx):
        ctx.sources[0]["status"] = "maintenance"
        res = interpret("status", context=ctx)
        assert "System Health: Degraded" in res.response
        assert "Graph: unavailable" in res.response

    def test_list_sources(self, ctx):
        res = interpret("list sources", context=ctx)
        assert "**System Truth Cache** (STC) - active" in res.response
        assert "Total: 6 sources" in res.response

    def test_help_mentions_current_source(self, ctx):
        res = interpret("help", source_code="STC", context=ctx)
        assert "**Current Source**: STC" in res.response

    def test_default_is_help(self):
        res = interpret("good morning")
        assert res.analysis_type == "help"
        assert "Available Commands" in res.response
