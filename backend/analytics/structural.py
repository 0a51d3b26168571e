"""
Structural similarity, graph-based impact and dependency lookup.

I/O is injected: each entry point takes a `fetch` callable that runs one
traversal (see queries/graph.py) and raises ExternalQueryError on any
failure, timeouts and unusable responses included. Such failures never
escape from here; they are logged and answered by the fallback the caller
supplies, and the returned Outcome says which path produced the data.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from .errors import ExternalQueryError
from .impact import ImpactAssessment
from .models import UNKNOWN_SOURCE, Node, find_node
from .outcome import Degraded, Empty, Outcome, Success
from .similarity import SimilarityResult, find_similar_by_prefix

logger = logging.getLogger(__name__)

STRUCTURAL_LIMIT = 20
FALLBACK_LIMIT   = 10


# ── Scoring (pure) ────────────────────────────────────────────────────────────

def structural_similarity(shared: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(shared / total, 1.0)


def connection_impact_level(connections: int, shared: int) -> str:
    weight = connections + shared * 2
    if weight > 20:
        return "CRITICAL"
    if weight > 10:
        return "HIGH"
    if weight > 5:
        return "MEDIUM"
    return "LOW"


def risk_score(direct: int, indirect: int, systems: int) -> int:
    return min(direct * 5 + indirect * 2 + systems * 10, 100)


def _flatten_properties(props: Any) -> dict:
    # valueMap() wraps every value in a list; unwrap the single-valued ones
    if not isinstance(props, dict):
        raise TypeError(f"properties must be a mapping, got {type(props).__name__}")
    return {
        k: v[0] if isinstance(v, list) and len(v) == 1 else v
        for k, v in props.items()
    }


def rows_to_results(rows: Any) -> list[SimilarityResult]:
    """Shared-neighbour rows → SimilarityResults. Malformed rows raise ExternalQueryError."""
    if not isinstance(rows, list):
        raise ExternalQueryError(f"Expected a list of rows, got {type(rows).__name__}")
    results = []
    try:
        for row in rows:
            shared = int(row["sharedConnections"])
            total  = int(row["totalConnections"])
            props  = _flatten_properties(row.get("properties") or {})
            results.append(SimilarityResult(
                node_id=str(row["nodeId"]),
                similarity=round(structural_similarity(shared, total), 4),
                impact_level=connection_impact_level(total, shared),
                source_code=row.get("system") or props.get("system") or UNKNOWN_SOURCE,
                relationship_count=total,
                shared_connections=shared,
                node_properties=props,
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ExternalQueryError(f"Malformed structural row: {exc!r}") from exc
    return results


# ── Structural similarity ─────────────────────────────────────────────────────

def local_structure_fallback(threads: list[dict], node_id: str) -> list[SimilarityResult]:
    """Prefix-based local pass seeded with the same node (full record when it is known)."""
    target = find_node(threads, node_id) or Node(id=node_id)
    return find_similar_by_prefix(threads, target, limit=FALLBACK_LIMIT)


def similar_by_structure(
    fetch:    Callable[[str, int], list],
    node_id:  str,
    fallback: Callable[[str], list[SimilarityResult]],
    max_hops: int = 2,
) -> Outcome:
    try:
        results = rows_to_results(fetch(node_id, max_hops))[:STRUCTURAL_LIMIT]
    except ExternalQueryError as exc:
        logger.warning("Structural similarity for %s fell back to local scoring: %s", node_id, exc)
        return Degraded(fallback(node_id), reason=str(exc))
    if not results:
        return Empty(f"No nodes share connections with {node_id}")
    return Success(results)


def find_similar_by_structure(
    fetch:    Callable[[str, int], list],
    node_id:  str,
    fallback: Callable[[str], list[SimilarityResult]],
    max_hops: int = 2,
) -> list[SimilarityResult]:
    return similar_by_structure(fetch, node_id, fallback, max_hops).data


# ── Graph-based impact ────────────────────────────────────────────────────────

@dataclass
class GraphImpactAssessment:
    target_node_id:       str
    direct_connections:   int
    indirect_connections: int
    critical_paths:       list[list[str]]
    affected_systems:     list[str]
    risk_score:           int
    recommendations:      list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def graph_recommendations(
    direct: int, indirect: int, systems: list[str], critical_paths: list,
) -> list[str]:
    recommendations = []
    if direct > 10:
        recommendations.append("High-impact node with many direct connections - implement staged rollout")
    if indirect > 50:
        recommendations.append("Extensive indirect impact detected - coordinate with downstream systems")
    if len(systems) > 3:
        recommendations.append(
            f"Multi-system impact across {len(systems)} systems - plan cross-system coordination"
        )
    if critical_paths:
        recommendations.append("Critical dependency paths identified - implement rollback procedures")
    return recommendations


def parse_impact_rows(node_id: str, rows: Any) -> GraphImpactAssessment:
    if not isinstance(rows, list) or not rows:
        raise ExternalQueryError(f"No impact data returned for {node_id}")
    row = rows[0]
    try:
        direct   = int(row.get("direct") or 0)
        indirect = int(row.get("indirect") or 0)
        paths    = list(row.get("criticalPaths") or [])
        systems  = [str(s) for s in (row.get("systems") or [])]
    except (TypeError, ValueError, AttributeError) as exc:
        raise ExternalQueryError(f"Malformed impact row: {exc!r}") from exc
    return GraphImpactAssessment(
        target_node_id=node_id,
        direct_connections=direct,
        indirect_connections=indirect,
        critical_paths=paths,
        affected_systems=systems,
        risk_score=risk_score(direct, indirect, len(systems)),
        recommendations=graph_recommendations(direct, indirect, systems, paths),
    )


def impact_from_local(assessment: ImpactAssessment) -> GraphImpactAssessment:
    """Reshape a local (similarity-based) assessment as a graph assessment."""
    summary = assessment.impact_summary
    return GraphImpactAssessment(
        target_node_id=assessment.target_node_id,
        direct_connections=0,
        indirect_connections=0,
        critical_paths=[],
        affected_systems=list(summary.source_breakdown),
        risk_score=summary.estimated_impact_score,
        recommendations=[
            "Graph database unavailable - impact estimated from similar nodes only",
            *assessment.recommendations,
        ],
    )


def graph_impact(
    fetch:    Callable[[str], list],
    node_id:  str,
    fallback: Callable[[str], GraphImpactAssessment],
) -> Outcome:
    """
    fallback — called once on failure; it may raise NodeNotFoundError, which
               is the one error this path lets through
    """
    try:
        assessment = parse_impact_rows(node_id, fetch(node_id))
    except ExternalQueryError as exc:
        logger.warning("Graph impact for %s fell back to local assessment: %s", node_id, exc)
        return Degraded(fallback(node_id), reason=str(exc))
    return Success(assessment)


# ── Dependencies ──────────────────────────────────────────────────────────────

@dataclass
class DependencyRecord:
    node_id:  str
    distance: int
    path:     list[str]
    type:     str | None = None
    system:   str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def rows_to_dependencies(rows: Any) -> list[DependencyRecord]:
    if not isinstance(rows, list):
        raise ExternalQueryError(f"Expected a list of rows, got {type(rows).__name__}")
    try:
        records = [
            DependencyRecord(
                node_id=str(row["nodeId"]),
                distance=int(row["distance"]),
                path=[str(p) for p in row.get("path") or []],
                type=row.get("type"),
                system=row.get("system"),
            )
            for row in rows
        ]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ExternalQueryError(f"Malformed dependency row: {exc!r}") from exc
    return sorted(records, key=lambda r: r.distance)


def find_dependencies(
    fetch:     Callable[[str, int], list],
    node_id:   str,
    max_depth: int = 3,
) -> Outcome:
    try:
        records = rows_to_dependencies(fetch(node_id, max_depth))
    except ExternalQueryError as exc:
        logger.warning("Dependency lookup for %s failed: %s", node_id, exc)
        return Degraded([], reason=str(exc))
    if not records:
        return Empty(f"No downstream dependencies found for {node_id}")
    return Success(records)
