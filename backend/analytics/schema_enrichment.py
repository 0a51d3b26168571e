"""
Schema enrichment — an optional, advisory boost from an external graph-schema
document.

SchemaCache owns (value, fetched_at) and decides staleness itself. The fetch
is injected so this module stays free of I/O; queries/schema.py supplies the
HTTP fetcher.

Schema document shape (either vertex key is accepted):
  {"vertexLabels": [{"label": "HH", "relationshipCount": 12}, ...],
   "edgeLabels":   ["connected_to", ...]}
A vertex entry may list its relationships instead of counting them:
  {"label": "TX", "relationships": ["processes", "validates"]}
"""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable

from .errors import ExternalQueryError
from .models import Node
from .similarity import IMPACT_LEVELS, SimilarityResult

logger = logging.getLogger(__name__)

SCHEMA_TTL_SECONDS = 300.0
SCHEMA_BOOST       = 0.1


class SchemaCache:
    """
    Process-wide, lazily populated schema holder.

    get() refetches once the value is older than `ttl` seconds. A failed
    fetch keeps the previous value *and* its timestamp, so the next call
    retries. No fetcher means enrichment is disabled and get() is None.
    """

    def __init__(
        self,
        fetcher: Callable[[], dict] | None = None,
        ttl: float = SCHEMA_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher    = fetcher
        self.ttl         = ttl
        self._clock      = clock
        self._value: dict | None   = None
        self._fetched_at: float | None = None

    @property
    def enabled(self) -> bool:
        return self._fetcher is not None

    def is_fresh(self) -> bool:
        return self._fetched_at is not None and self._clock() - self._fetched_at < self.ttl

    def get(self) -> dict | None:
        if self._fetcher is None:
            return None
        if self.is_fresh():
            return self._value
        try:
            value = self._fetcher()
        except ExternalQueryError as exc:
            logger.warning("Schema refresh failed, keeping cached copy: %s", exc)
            return self._value
        self._value, self._fetched_at = value, self._clock()
        return value

    def state(self) -> dict:
        age = None if self._fetched_at is None else round(self._clock() - self._fetched_at, 1)
        return {
            "enabled":     self.enabled,
            "cached":      self._value is not None,
            "age_seconds": age,
            "ttl_seconds": self.ttl,
        }


# ── Enrichment (pure) ─────────────────────────────────────────────────────────

def _vertex_entries(schema: dict) -> list[dict]:
    raw = schema.get("vertexLabels", schema.get("vertices", [])) or []
    entries = []
    for item in raw:
        if isinstance(item, str):
            entries.append({"label": item, "relationship_count": 0})
        elif isinstance(item, dict):
            label = item.get("label") or item.get("name")
            if not label:
                continue
            count = item.get("relationshipCount")
            if count is None:
                count = len(item.get("relationships") or item.get("edges") or [])
            try:
                count = int(count)
            except (TypeError, ValueError):
                count = 0
            entries.append({"label": str(label), "relationship_count": count})
    return entries


def match_vertex(schema: dict | None, node: Node) -> dict | None:
    """First schema vertex whose label equals the node's type, class or function name."""
    if not schema:
        return None
    wanted = {v.lower() for v in (node.type, node.class_, node.function_name) if v}
    if not wanted:
        return None
    for entry in _vertex_entries(schema):
        if entry["label"].lower() in wanted:
            return entry
    return None


def escalate(level: str, relationship_count: int) -> str:
    """Raise level by relationship count (>10 CRITICAL, >5 HIGH, >2 MEDIUM); never lowers it."""
    if relationship_count > 10:
        floor = "CRITICAL"
    elif relationship_count > 5:
        floor = "HIGH"
    elif relationship_count > 2:
        floor = "MEDIUM"
    else:
        return level
    return max(level, floor, key=IMPACT_LEVELS.index)


def enrich_result(result: SimilarityResult, schema: dict | None) -> SimilarityResult:
    vertex = match_vertex(schema, Node.from_record(result.node_properties))
    if vertex is None:
        return result
    return replace(
        result,
        similarity=round(min(result.similarity + SCHEMA_BOOST, 1.0), 4),
        impact_level=escalate(result.impact_level, vertex["relationship_count"]),
        relationship_count=max(result.relationship_count, vertex["relationship_count"]),
    )


def enrich_results(results: list[SimilarityResult], schema: dict | None) -> list[SimilarityResult]:
    if not schema:
        return results
    enriched = [enrich_result(r, schema) for r in results]
    return sorted(enriched, key=lambda r: r.similarity, reverse=True)
