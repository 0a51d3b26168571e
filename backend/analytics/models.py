"""
Thread and node records — the typed core the scorers work on.

Threads arrive as loosely-structured dicts:
  {threadId, tqName, componentNode: [{node: [{...}, ...]}, ...]}

A Node keeps id / nodeKey / type / class / functionName / description typed.
Every other key is carried in `extra` untouched and echoed back by
to_record(); scoring never reads it.

There is no global node index: "all nodes" is always the walk
thread → componentNode → node, in that order.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator

# record key → Node attribute
CORE_FIELDS = {
    "id":           "id",
    "nodeKey":      "node_key",
    "type":         "type",
    "class":        "class_",
    "functionName": "function_name",
    "description":  "description",
}

UNKNOWN_SOURCE = "UNKNOWN"


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


@dataclass
class Node:
    id:            str | None = None
    node_key:      str | None = None
    type:          str | None = None
    class_:        str | None = None
    function_name: str | None = None
    description:   str | None = None
    extra:         dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict) -> "Node":
        core = {attr: _as_text(record.get(key)) for key, attr in CORE_FIELDS.items()}
        extra = {k: v for k, v in record.items() if k not in CORE_FIELDS}
        return cls(**core, extra=extra)

    @property
    def key(self) -> str | None:
        """Identity used in results: id, else nodeKey."""
        return self.id or self.node_key

    def matches(self, node_id: str) -> bool:
        return bool(node_id) and node_id in (self.id, self.node_key)

    def same_as(self, other: "Node") -> bool:
        mine = {k for k in (self.id, self.node_key) if k}
        return bool(mine & {k for k in (other.id, other.node_key) if k})

    def to_record(self) -> dict:
        record = {
            key: getattr(self, attr)
            for key, attr in CORE_FIELDS.items()
            if getattr(self, attr) is not None
        }
        record.update(self.extra)
        return record


def source_from_tq_name(tq_name: str | None) -> str:
    """`SCR_mb.SCR_mb` → `SCR`: the prefix before the first `_` or `.`."""
    if not tq_name:
        return UNKNOWN_SOURCE
    prefix = re.split(r"[_.]", tq_name, maxsplit=1)[0]
    return prefix or UNKNOWN_SOURCE


def iter_thread_nodes(threads: list[dict]) -> Iterator[tuple[dict, Node]]:
    """Yield (thread, node) in thread, component, node order. Malformed entries are skipped."""
    for thread in threads:
        if not isinstance(thread, dict):
            continue
        components = thread.get("componentNode")
        if not isinstance(components, list):
            continue
        for component in components:
            records = component.get("node") if isinstance(component, dict) else None
            if not isinstance(records, list):
                continue
            for record in records:
                if isinstance(record, dict):
                    yield thread, Node.from_record(record)


def count_by_source(threads: list[dict]) -> dict[str, dict[str, int]]:
    """{source code: {"threads": n, "nodes": m}} in first-seen order."""
    counts: dict[str, dict[str, int]] = {}
    for thread in threads:
        if not isinstance(thread, dict):
            continue
        entry = counts.setdefault(source_from_tq_name(thread.get("tqName")), {"threads": 0, "nodes": 0})
        entry["threads"] += 1
        entry["nodes"] += sum(1 for _ in iter_thread_nodes([thread]))
    return counts


def find_node(threads: list[dict], node_id: str) -> Node | None:
    """First node whose id or nodeKey equals node_id; keyless nodes are skipped."""
    for _, node in iter_thread_nodes(threads):
        if node.key is None:
            continue
        if node.matches(node_id):
            return node
    return None


def find_node_with_thread(threads: list[dict], node_id: str) -> tuple[dict, Node] | None:
    for thread, node in iter_thread_nodes(threads):
        if node.key is not None and node.matches(node_id):
            return thread, node
    return None
