"""
Graph traversals evaluated in-process — pure functions over a networkx graph.

These are the local counterparts of the traversal texts in queries/graph.py.
Each returns the same row shape a graph server would, so callers cannot tell
which side answered.

Graph shape (built by queries/graph.build_graph):
  node key = node id (or nodeKey)
  node attrs: properties (full record), type, system (owning source code)
  edges: directed, from the store's edges table
"""
from __future__ import annotations

from collections import deque

import networkx as nx

from .similarity import CRITICAL_TYPES


def _neighbors(U: nx.Graph, node: str) -> list[str]:
    return [n for n in U.neighbors(node) if n != node]


def shared_neighbors(G: nx.DiGraph, node_id: str, max_hops: int = 2, limit: int = 20) -> list[dict]:
    """
    Rank other nodes by how many neighbours they share with node_id.

    Direction is ignored. Candidates must lie within max_hops of the target;
    ties keep graph insertion order.
    """
    if node_id not in G:
        return []
    U = G.to_undirected(as_view=True)
    target_neighbors = set(_neighbors(U, node_id))
    reach = nx.single_source_shortest_path_length(U, node_id, cutoff=max_hops)

    rows = []
    for other in G.nodes:
        if other == node_id or other not in reach:
            continue
        neighbors = set(_neighbors(U, other))
        shared = len(neighbors & target_neighbors)
        if shared == 0:
            continue
        rows.append({
            "nodeId":            other,
            "sharedConnections": shared,
            "totalConnections":  len(neighbors),
            "system":            G.nodes[other].get("system"),
            "properties":        dict(G.nodes[other].get("properties") or {}),
        })
    rows.sort(key=lambda r: r["sharedConnections"], reverse=True)
    return rows[:limit]


def impact_connections(G: nx.DiGraph, node_id: str) -> list[dict]:
    """
    One row: direct / indirect (exactly two hops) neighbour counts, paths to
    critical-typed neighbours, and the systems touched within two hops.
    """
    if node_id not in G:
        return []
    U = G.to_undirected(as_view=True)
    direct = _neighbors(U, node_id)
    direct_set = set(direct)

    indirect: dict[str, None] = {}
    for n in direct:
        for m in _neighbors(U, n):
            if m != node_id and m not in direct_set:
                indirect[m] = None

    critical_paths = [
        [node_id, n] for n in direct
        if G.nodes[n].get("type") in CRITICAL_TYPES
    ][:10]

    systems: dict[str, None] = {}
    for n in list(direct) + list(indirect):
        system = G.nodes[n].get("system")
        if system:
            systems[system] = None

    return [{
        "direct":        len(direct),
        "indirect":      len(indirect),
        "criticalPaths": critical_paths,
        "systems":       list(systems),
    }]


def dependents(G: nx.DiGraph, node_id: str, max_depth: int = 3) -> list[dict]:
    """BFS downstream (following edge direction) up to max_depth hops, nearest first."""
    if node_id not in G:
        return []
    parents: dict[str, str | None] = {node_id: None}
    queue = deque([(node_id, 0)])
    rows = []
    while queue:
        current, depth = queue.popleft()
        if depth >= max_depth:
            continue
        for nxt in G.successors(current):
            if nxt in parents:
                continue
            parents[nxt] = current
            queue.append((nxt, depth + 1))

            path = [nxt]
            while parents[path[-1]] is not None:
                path.append(parents[path[-1]])
            attrs = G.nodes[nxt]
            rows.append({
                "nodeId":   nxt,
                "distance": depth + 1,
                "path":     list(reversed(path)),
                "type":     attrs.get("type"),
                "system":   attrs.get("system"),
            })
    return rows


def vertex_count(G: nx.DiGraph) -> list[int]:
    return [G.number_of_nodes()]


def edge_count(G: nx.DiGraph) -> list[int]:
    return [G.number_of_edges()]
