"""
Impact assessment — pure functions only.

Estimates the blast radius of changing one node from the nodes that look
like it: every similar node is a place the same change probably has to land.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import asdict, dataclass, field

from .errors import NodeNotFoundError
from .models import find_node
from .schema_enrichment import enrich_results
from .similarity import SimilarityResult, find_similar_nodes

IMPACT_THRESHOLD = 0.5   # interactive lookups use DEFAULT_THRESHOLD (0.7)

SEVERITY_WEIGHTS = {"CRITICAL": 25, "HIGH": 15, "MEDIUM": 8, "LOW": 3}
MAX_COUNT_MULTIPLIER = 1.5


@dataclass
class ImpactSummary:
    total_affected_nodes:   int
    source_breakdown:       dict[str, int]
    severity_breakdown:     dict[str, int]
    estimated_impact_score: int


@dataclass
class ImpactAssessment:
    target_node_id:  str
    affected_nodes:  list[SimilarityResult]
    impact_summary:  ImpactSummary
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def estimate_impact_score(levels: list[str]) -> int:
    """
    0–100. Weighted severity sum (capped at 100) times a breadth multiplier
    of min(n / 10, 1.5), capped again at 100.
    """
    if not levels:
        return 0
    base = min(sum(SEVERITY_WEIGHTS[level] for level in levels), 100)
    multiplier = min(len(levels) / 10, MAX_COUNT_MULTIPLIER)
    return min(_round_half_up(base * multiplier), 100)


def recommend(affected: list[SimilarityResult], impact_score: int) -> list[str]:
    recommendations = []
    if impact_score >= 80:
        recommendations.append("CRITICAL: Implement change management process with extensive testing")
        recommendations.append("Schedule a maintenance window for coordinated updates across all affected systems")
    elif impact_score >= 60:
        recommendations.append("HIGH IMPACT: Conduct thorough testing in a staging environment")
        recommendations.append("Plan a phased rollout to minimize disruption")
    elif impact_score >= 30:
        recommendations.append("MEDIUM IMPACT: Monitor affected systems closely during changes")
        recommendations.append("Review dependencies before implementing modifications")
    else:
        recommendations.append("LOW IMPACT: Standard testing procedures should be sufficient")

    sources = list(dict.fromkeys(r.source_code for r in affected))
    if len(sources) > 2:
        recommendations.append(
            f"Multi-system impact detected across {', '.join(sources)} - coordinate with all teams"
        )

    critical = sum(1 for r in affected if r.impact_level == "CRITICAL")
    if critical:
        recommendations.append(f"{critical} critical nodes affected - implement a rollback plan")
    return recommendations


def summarize(affected: list[SimilarityResult]) -> ImpactSummary:
    return ImpactSummary(
        total_affected_nodes=len(affected),
        source_breakdown=dict(Counter(r.source_code for r in affected)),
        severity_breakdown=dict(Counter(r.impact_level for r in affected)),
        estimated_impact_score=estimate_impact_score([r.impact_level for r in affected]),
    )


def assess_impact(
    threads: list[dict],
    node_id: str,
    schema:  dict | None = None,
) -> ImpactAssessment:
    """
    Resolve node_id, score every node (itself included) at IMPACT_THRESHOLD,
    and fold the matches into a summary plus recommendations.

    schema — optional schema document; matching nodes get the enrichment boost
    Raises NodeNotFoundError when node_id is not in any thread.
    """
    target = find_node(threads, node_id)
    if target is None:
        raise NodeNotFoundError(node_id)

    # the target scores 1.0 against itself and counts toward its own blast radius
    affected = find_similar_nodes(threads, target, threshold=IMPACT_THRESHOLD)
    affected = enrich_results(affected, schema)

    summary = summarize(affected)
    return ImpactAssessment(
        target_node_id=node_id,
        affected_nodes=affected,
        impact_summary=summary,
        recommendations=recommend(affected, summary.estimated_impact_score),
    )
