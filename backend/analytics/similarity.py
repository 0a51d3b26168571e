"""
Local similarity scoring — pure functions only.

Two scorers over in-process thread data:

  score()            weighted property match, normalised over the factors
                     both records actually carry
  prefix_similarity  permissive id-prefix / type / function-name match that
                     backs the conversational interface

plus the impact-level classifier shared by both.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from .models import Node, iter_thread_nodes, source_from_tq_name
from .string_similarity import similarity as string_similarity

CRITICAL_TYPES    = frozenset({"TX", "AUTH", "CORE"})
HIGH_IMPACT_TYPES = frozenset({"HH", "CF", "NET"})
IMPACT_LEVELS     = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

DEFAULT_THRESHOLD = 0.7


def _exact(a: str, b: str) -> float:
    return 1.0 if a == b else 0.0


# (Node attribute, weight, comparator)
_FACTORS = [
    ("type",          0.4, _exact),
    ("class_",        0.3, _exact),
    ("function_name", 0.2, string_similarity),
    ("description",   0.1, string_similarity),
]


@dataclass
class SimilarityResult:
    node_id:            str | None
    similarity:         float
    impact_level:       str
    source_code:        str
    relationship_count: int = 0
    shared_connections: int = 0
    node_properties:    dict[str, Any] = field(default_factory=dict)
    thread_id:          str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def score(target: Node, candidate: Node) -> float:
    """
    Weighted similarity in [0, 1].

    type 0.4 (exact), class 0.3 (exact), functionName 0.2 (fuzzy),
    description 0.1 (fuzzy). Only factors present on both sides count toward
    the denominator, so a target carrying just `type` can still reach 1.0.
    """
    earned = 0.0
    possible = 0.0
    for attr, weight, compare in _FACTORS:
        a, b = getattr(target, attr), getattr(candidate, attr)
        if not a or not b:
            continue
        earned += weight * compare(a, b)
        possible += weight
    if possible == 0:
        return 0.0
    return min(earned / possible, 1.0)


def impact_level(similarity: float, node: Node) -> str:
    """First matching rule wins; the order is part of the contract."""
    node_type = node.type
    if node_type in CRITICAL_TYPES and similarity > 0.8:
        return "CRITICAL"
    if node_type in CRITICAL_TYPES or similarity > 0.9:
        return "HIGH"
    if node_type in HIGH_IMPACT_TYPES and similarity > 0.7:
        return "HIGH"
    if similarity > 0.8:
        return "MEDIUM"
    return "LOW"


def _result(thread: dict, node: Node, sim: float) -> SimilarityResult:
    return SimilarityResult(
        node_id=node.key,
        similarity=round(sim, 4),
        impact_level=impact_level(sim, node),
        source_code=source_from_tq_name(thread.get("tqName")),
        node_properties=node.to_record(),
        thread_id=thread.get("threadId"),
    )


def _sort_desc(results: list[SimilarityResult]) -> list[SimilarityResult]:
    # stable: equal scores keep thread / component / node order
    return sorted(results, key=lambda r: r.similarity, reverse=True)


def find_similar_nodes(
    threads:   list[dict],
    target:    Node,
    threshold: float = DEFAULT_THRESHOLD,
    exclude:   Node | None = None,
) -> list[SimilarityResult]:
    """
    Score every node in every thread against target, keep those >= threshold.

    exclude — a node to leave out of the results (the target itself when
              assessing impact)
    """
    results = []
    for thread, node in iter_thread_nodes(threads):
        if exclude is not None and node.same_as(exclude):
            continue
        sim = score(target, node)
        if sim >= threshold:
            results.append(_result(thread, node, sim))
    return _sort_desc(results)


# ── Prefix-based (conversational) variant ─────────────────────────────────────

PREFIX_BASE = 0.3


def id_prefix(node_id: str | None) -> str | None:
    """`HH@id@934` → `HH`; None when the id has no `@`."""
    if not node_id or "@" not in node_id:
        return None
    return node_id.split("@", 1)[0] or None


def _type_match(target: Node, candidate: Node) -> bool:
    if not candidate.type:
        return False
    if target.type:
        return target.type == candidate.type
    # a bare id like HH@id@934 still tells us the type
    return bool(target.key) and candidate.type in target.key


def _function_match(target: Node, candidate: Node) -> bool:
    theirs = (candidate.function_name or "").lower()
    if not theirs:
        return False
    mine = (target.function_name or "").lower()
    if mine:
        return mine in theirs or theirs in mine
    return bool(target.key) and theirs in target.key.lower()


def prefix_similarity(target: Node, candidate: Node) -> float | None:
    """
    Permissive match for partial hints. None when nothing matches; otherwise
    0.3 base + 0.4 (id prefix) + 0.2 (type) + 0.1 (function name), capped at 1.
    """
    prefix = id_prefix(target.key)
    prefix_hit = prefix is not None and prefix == id_prefix(candidate.key)
    type_hit = _type_match(target, candidate)
    function_hit = _function_match(target, candidate)

    if not (prefix_hit or type_hit or function_hit):
        return None
    sim = PREFIX_BASE
    if prefix_hit:
        sim += 0.4
    if type_hit:
        sim += 0.2
    if function_hit:
        sim += 0.1
    return min(sim, 1.0)


def find_similar_by_prefix(
    threads: list[dict],
    target:  Node,
    limit:   int = 10,
) -> list[SimilarityResult]:
    results = []
    for thread, node in iter_thread_nodes(threads):
        if node.same_as(target):
            continue
        sim = prefix_similarity(target, node)
        if sim is not None:
            results.append(_result(thread, node, sim))
    return _sort_desc(results)[:limit]
