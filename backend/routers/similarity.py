from functools import partial
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from config import get_settings
from db import get_db
from queries.graph import fetch_dependents, fetch_shared_neighbors, get_executor
from queries.schema import get_schema_cache
from queries.threads import fetch_threads
from analytics.models import Node, find_node
from analytics.outcome import describe
from analytics.schema_enrichment import enrich_results
from analytics.similarity import DEFAULT_THRESHOLD, find_similar_by_prefix, find_similar_nodes
from analytics.structural import find_dependencies, local_structure_fallback, similar_by_structure

router = APIRouter()


class SimilarityRequest(BaseModel):
    target:    dict[str, Any]
    threshold: float = Field(DEFAULT_THRESHOLD, ge=0.0, le=1.0)
    method:    Literal["weighted", "prefix"] = "weighted"
    limit:     int = Field(50, ge=1, le=500)


def _resolve_target(threads: list[dict], target: dict) -> Node:
    """A target carrying only an id (or nodeKey) is looked up; anything richer is used as given."""
    node = Node.from_record(target)
    if node.key and not (node.type or node.class_ or node.function_name or node.description):
        stored = find_node(threads, node.key)
        if stored is None:
            raise HTTPException(status_code=404, detail=f"Node {node.key} not found")
        return stored
    return node


def _similar(threads: list[dict], target: Node, threshold: float, method: str, limit: int) -> dict:
    if method == "prefix":
        results = find_similar_by_prefix(threads, target, limit=limit)
    else:
        exclude = target if target.key else None
        results = find_similar_nodes(threads, target, threshold=threshold, exclude=exclude)[:limit]

    schema = get_schema_cache().get()
    results = enrich_results(results, schema)
    return {
        "target":          target.to_record(),
        "threshold":       threshold,
        "method":          method,
        "results":         [r.to_dict() for r in results],
        "total":           len(results),
        "schema_enriched": schema is not None,
    }


@router.post("/api/similarity")
def similarity(req: SimilarityRequest):
    conn    = get_db()
    threads = fetch_threads(conn)
    conn.close()
    target = _resolve_target(threads, req.target)
    return _similar(threads, target, req.threshold, req.method, req.limit)


@router.get("/api/nodes/{node_id}/similar")
def similar_to_node(
    node_id:   str,
    threshold: float = Query(DEFAULT_THRESHOLD, ge=0.0, le=1.0),
    method:    Literal["weighted", "prefix"] = "weighted",
    limit:     int = Query(50, ge=1, le=500),
):
    conn    = get_db()
    threads = fetch_threads(conn)
    conn.close()
    target = find_node(threads, node_id)
    if target is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
    return _similar(threads, target, threshold, method, limit)


@router.get("/api/nodes/{node_id}/similar-structure")
def similar_structure(node_id: str, max_hops: int = Query(2, ge=1, le=4)):
    conn     = get_db()
    threads  = fetch_threads(conn)
    executor = get_executor(conn, get_settings())
    conn.close()

    outcome = similar_by_structure(
        partial(fetch_shared_neighbors, executor),
        node_id,
        fallback=partial(local_structure_fallback, threads),
        max_hops=max_hops,
    )
    return {
        "node_id": node_id,
        "results": [r.to_dict() for r in outcome.data],
        "outcome": describe(outcome),
    }


@router.get("/api/nodes/{node_id}/dependencies")
def dependencies(node_id: str, max_depth: int = Query(3, ge=1, le=6)):
    conn     = get_db()
    executor = get_executor(conn, get_settings())
    conn.close()

    outcome = find_dependencies(partial(fetch_dependents, executor), node_id, max_depth)
    return {
        "node_id":      node_id,
        "dependencies": [r.to_dict() for r in outcome.data],
        "outcome":      describe(outcome),
    }
