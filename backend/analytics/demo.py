"""
Synthetic demonstration data for an empty store — pure functions only.

Values are seeded from a CRC of the request so the same question always gets
the same answer. Everything produced here is flagged: callers put
`"synthetic": True` in the payload and prefix the text with DEMO_NOTICE.
"""
from __future__ import annotations

import random
import re
import zlib

from .models import Node
from .similarity import SimilarityResult, id_prefix, impact_level
from .structural import DependencyRecord

DEMO_NOTICE  = "[Demo data]"
DEMO_TYPES   = ("HH", "TX", "CF", "NET", "AUTH", "CORE")
DEMO_SOURCES = ("STC", "CPT", "SLC", "TMC", "CAS", "NVL")

TYPE_CODE_RE = re.compile(r"[A-Z][A-Z0-9]*")


def _rng(seed: str) -> random.Random:
    return random.Random(zlib.crc32(seed.encode("utf-8")))


def demo_similar_nodes(hint: str, limit: int = 5) -> list[SimilarityResult]:
    """hint is a node id (`HH@id@934`), a type code (`HH`) or a function name."""
    rng = _rng(f"similar:{hint}")
    node_type = id_prefix(hint) or (hint if TYPE_CODE_RE.fullmatch(hint) else rng.choice(DEMO_TYPES))
    base = rng.randint(100, 900)

    results = []
    sim = 0.95
    for i in range(limit):
        sim = round(max(sim - rng.uniform(0.03, 0.12), 0.3), 4)
        node_id = f"{node_type}@id@{base + i + 1}"
        results.append(SimilarityResult(
            node_id=node_id,
            similarity=sim,
            impact_level=impact_level(sim, Node(id=node_id, type=node_type)),
            source_code=rng.choice(DEMO_SOURCES),
            node_properties={"id": node_id, "type": node_type, "synthetic": True},
        ))
    return results


def demo_node_counts(requested_type: str | None = None) -> dict[str, int]:
    rng = _rng("counts")
    counts = {t: rng.randint(3, 40) for t in DEMO_TYPES}
    if requested_type and requested_type not in counts:
        counts[requested_type] = _rng(f"count:{requested_type}").randint(1, 25)
    return counts


def demo_dependencies(node_id: str) -> list[DependencyRecord]:
    rng = _rng(f"deps:{node_id}")
    records = []
    frontier = [[node_id]]
    for distance in (1, 2, 3):
        next_frontier = []
        for path in frontier:
            for _ in range(rng.randint(0, 2) if distance > 1 else rng.randint(1, 3)):
                node_type = rng.choice(DEMO_TYPES)
                dep_id = f"{node_type}@id@{rng.randint(100, 999)}"
                dep_path = path + [dep_id]
                records.append(DependencyRecord(
                    node_id=dep_id,
                    distance=distance,
                    path=dep_path,
                    type=node_type,
                    system=rng.choice(DEMO_SOURCES),
                ))
                next_frontier.append(dep_path)
        frontier = next_frontier
    return records
