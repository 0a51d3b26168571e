"""
Graph query executors and traversal fetchers — I/O only.

Two executors share one contract, execute(query, bindings) -> QueryResult:

  LocalGraphExecutor   evaluates the traversal texts below in-process with
                       networkx over the store's threads + edges tables
  GremlinHttpExecutor  POSTs them to a Gremlin Server HTTP endpoint
                       (GRAPH_URL)

The fetch_* helpers run one traversal and raise ExternalQueryError for any
failure, which is what analytics/structural.py expects from its callables.
"""
from __future__ import annotations

import logging
import sqlite3
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

import networkx as nx
import requests

from analytics import traversals
from analytics.errors import ExternalQueryError
from analytics.models import iter_thread_nodes, source_from_tq_name
from config import Settings
from queries.threads import fetch_edges, fetch_threads

logger = logging.getLogger(__name__)

# ── Traversal texts ───────────────────────────────────────────────────────────

SHARED_NEIGHBORS = """
g.V().has('id', nodeId).as('target').both().aggregate('tn').both()
 .where(neq('target')).dedup()
 .project('nodeId', 'sharedConnections', 'totalConnections', 'system', 'properties')
 .by(values('id'))
 .by(both().where(within('tn')).count())
 .by(both().count())
 .by(values('system'))
 .by(valueMap())
 .order().by(select('sharedConnections'), desc).limit(20)
"""

IMPACT_CONNECTIONS = """
g.V().has('id', nodeId)
 .project('direct', 'indirect', 'criticalPaths', 'systems')
 .by(both().dedup().count())
 .by(both().both().dedup().count())
 .by(both().has('type', within('TX', 'AUTH', 'CORE')).path().by('id').limit(10).fold())
 .by(union(both(), both().both()).values('system').dedup().fold())
"""

DEPENDENTS = """
g.V().has('id', nodeId).repeat(out().simplePath()).times(maxDepth).emit()
 .project('nodeId', 'distance', 'path', 'type', 'system')
 .by(values('id')).by(path().count(local)).by(path().by('id'))
 .by(values('type')).by(values('system'))
"""

VERTEX_COUNT = "g.V().count()"
EDGE_COUNT   = "g.E().count()"
PING         = "g.V().limit(1).count()"


def _normalize(query: str) -> str:
    return " ".join(query.split())


@dataclass
class QueryResult:
    success:           bool
    data:              Any = field(default_factory=list)
    error:             str | None = None
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


# ── Local executor ────────────────────────────────────────────────────────────

_LOCAL_TRAVERSALS: dict[str, Callable[[nx.DiGraph, dict], Any]] = {
    _normalize(SHARED_NEIGHBORS): lambda G, b: traversals.shared_neighbors(
        G, b["nodeId"], max_hops=int(b.get("maxHops", 2))
    ),
    _normalize(IMPACT_CONNECTIONS): lambda G, b: traversals.impact_connections(G, b["nodeId"]),
    _normalize(DEPENDENTS): lambda G, b: traversals.dependents(
        G, b["nodeId"], max_depth=int(b.get("maxDepth", 3))
    ),
    _normalize(VERTEX_COUNT): lambda G, b: traversals.vertex_count(G),
    _normalize(EDGE_COUNT):   lambda G, b: traversals.edge_count(G),
    _normalize(PING):         lambda G, b: [min(G.number_of_nodes(), 1)],
}

_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="graph-local")


def build_graph(conn: sqlite3.Connection) -> nx.DiGraph:
    """
    One vertex per keyed node (first occurrence wins), one edge per edges row.
    Vertex attrs: properties (full record), type, system.
    """
    G = nx.DiGraph()
    for thread in fetch_threads(conn):
        system = source_from_tq_name(thread.get("tqName"))
        for _, node in iter_thread_nodes([thread]):
            if node.key is None or node.key in G:
                continue
            G.add_node(node.key, properties=node.to_record(), type=node.type, system=system)
    for edge in fetch_edges(conn):
        G.add_edge(edge["source_id"], edge["target_id"], label=edge["label"])
    return G


class LocalGraphExecutor:
    """Answers the known traversal texts only; anything else is an unsuccessful result."""

    mode = "local"

    def __init__(self, graph: nx.DiGraph, timeout: float = 10.0):
        self.graph = graph
        self.timeout = timeout

    def execute(self, query: str, bindings: dict | None = None) -> QueryResult:
        started = time.perf_counter()
        handler = _LOCAL_TRAVERSALS.get(_normalize(query))
        if handler is None:
            return QueryResult(False, [], "Traversal not supported by the local executor", _elapsed_ms(started))

        future = _pool.submit(handler, self.graph, bindings or {})
        try:
            data = future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            return QueryResult(False, [], f"Query timed out after {self.timeout}s", _elapsed_ms(started))
        except (KeyError, TypeError, ValueError, nx.NetworkXError) as exc:
            return QueryResult(False, [], f"{type(exc).__name__}: {exc}", _elapsed_ms(started))
        return QueryResult(True, data, None, _elapsed_ms(started))


# ── Remote executor ───────────────────────────────────────────────────────────

def _unwrap(value: Any) -> Any:
    """Strip GraphSON @type/@value wrappers; g:Map lists become dicts."""
    if isinstance(value, dict):
        if "@value" in value:
            inner = value["@value"]
            if value.get("@type") == "g:Map" and isinstance(inner, list):
                return {_unwrap(k): _unwrap(v) for k, v in zip(inner[::2], inner[1::2])}
            return _unwrap(inner)
        return {k: _unwrap(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_unwrap(v) for v in value]
    return value


class GremlinHttpExecutor:
    mode = "remote"

    def __init__(self, url: str, timeout: float = 10.0, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def execute(self, query: str, bindings: dict | None = None) -> QueryResult:
        started = time.perf_counter()
        try:
            resp = self.session.post(
                self.url,
                json={"gremlin": query, "bindings": bindings or {}},
                headers={"Accept": "application/vnd.gremlin-v1.0+json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            return QueryResult(False, [], str(exc), _elapsed_ms(started))
        except ValueError as exc:
            return QueryResult(False, [], f"Invalid JSON from graph server: {exc}", _elapsed_ms(started))

        if not isinstance(body, dict) or "result" not in body:
            return QueryResult(False, [], "Graph server response has no result", _elapsed_ms(started))
        data = _unwrap((body.get("result") or {}).get("data"))
        return QueryResult(True, data if data is not None else [], None, _elapsed_ms(started))


def get_executor(conn: sqlite3.Connection, settings: Settings):
    if settings.graph_url:
        return GremlinHttpExecutor(settings.graph_url, settings.graph_timeout)
    return LocalGraphExecutor(build_graph(conn), settings.graph_timeout)


# ── Fetchers ──────────────────────────────────────────────────────────────────

def run_traversal(executor, query: str, bindings: dict | None = None) -> Any:
    """Execute and return data; every kind of failure becomes ExternalQueryError."""
    try:
        result = executor.execute(query, bindings)
    except Exception as exc:
        raise ExternalQueryError(f"Graph executor raised {type(exc).__name__}: {exc}") from exc
    if not result.success:
        raise ExternalQueryError(result.error or "Graph query failed")
    return result.data


def fetch_shared_neighbors(executor, node_id: str, max_hops: int = 2) -> list:
    return run_traversal(executor, SHARED_NEIGHBORS, {"nodeId": node_id, "maxHops": max_hops})


def fetch_impact_connections(executor, node_id: str) -> list:
    return run_traversal(executor, IMPACT_CONNECTIONS, {"nodeId": node_id})


def fetch_dependents(executor, node_id: str, max_depth: int = 3) -> list:
    return run_traversal(executor, DEPENDENTS, {"nodeId": node_id, "maxDepth": max_depth})


def _single_count(data: Any) -> int:
    if isinstance(data, list) and data:
        data = data[0]
    try:
        return int(data)
    except (TypeError, ValueError) as exc:
        raise ExternalQueryError(f"Expected a count, got {data!r}") from exc


def fetch_graph_counts(executor) -> dict | None:
    """{"vertices", "edges"}, or None when the executor cannot answer."""
    try:
        return {
            "vertices": _single_count(run_traversal(executor, VERTEX_COUNT)),
            "edges":    _single_count(run_traversal(executor, EDGE_COUNT)),
        }
    except ExternalQueryError as exc:
        logger.warning("Graph counts unavailable: %s", exc)
        return None


def ping(executor) -> dict:
    try:
        result = executor.execute(PING)
    except Exception as exc:
        logger.warning("Graph health probe raised: %s", exc)
        return {"ok": False, "mode": executor.mode, "error": str(exc), "execution_time_ms": None}
    return {
        "ok":                result.success,
        "mode":              executor.mode,
        "error":             result.error,
        "execution_time_ms": result.execution_time_ms,
    }
