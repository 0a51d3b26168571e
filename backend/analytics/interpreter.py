"""
Non-AI command interpreter — keyword intent routing over the engine.

A message is classified by walking INTENT_RULES, then GENERAL_RULES, top to
bottom; the first predicate that holds names the intent, and HANDLERS maps
the intent to the function that answers it. Nothing here touches the store:
everything a handler needs arrives in a ChatContext built by the router.

Handlers raise MalformedInputError when a required parameter is missing and
NodeNotFoundError when a named node does not exist; interpret() turns both
into ordinary text responses.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from .demo import DEMO_NOTICE, demo_dependencies, demo_node_counts, demo_similar_nodes
from .errors import MalformedInputError, NodeNotFoundError
from .impact import assess_impact
from .models import Node, find_node, find_node_with_thread, iter_thread_nodes, source_from_tq_name
from .outcome import Empty, Outcome, describe
from .similarity import find_similar_by_prefix

logger = logging.getLogger(__name__)

MAX_LISTED = 10

# ── Parameter extraction ──────────────────────────────────────────────────────

NODE_ID_RE     = re.compile(r"\b[A-Z]+@id@\d+\b")
BARE_NUMBER_RE = re.compile(r"(?<![\w@.])(\d+)(?![\w@.])")
TYPE_RE        = re.compile(r"(?i:type)\s*:\s*([A-Za-z][A-Za-z0-9]*)")
FUNCTION_RE    = re.compile(r"(?i:function)\s*:\s*([\w.]+)")
COUNT_TYPE_RE  = re.compile(r"(?i:how\s+many)\s+([A-Z][A-Z0-9]*)\s+(?i:nodes?)\b")
TERM_RE        = re.compile(r"\b(?i:for|matching|named|containing)\s+(?!(?i:type|function)\s*:)[\"']?([\w@.\-]+)")
BARE_TYPE_RE   = re.compile(r"\b([A-Z][A-Z0-9]+)\s+(?i:nodes?)\b")


def extract_node_id(message: str, threads: list[dict] | None = None) -> str | None:
    """
    `HH@id@934` as written, else a bare number. A bare number is resolved to
    the first node whose id ends in `@id@<n>` (or is exactly <n>) when
    threads are given.
    """
    match = NODE_ID_RE.search(message)
    if match:
        return match.group(0)
    match = BARE_NUMBER_RE.search(message)
    if not match:
        return None
    number = match.group(1)
    for _, node in iter_thread_nodes(threads or []):
        key = node.key
        if key and (key == number or key.endswith(f"@id@{number}")):
            return key
    return number


def extract_type(message: str) -> str | None:
    match = TYPE_RE.search(message)
    return match.group(1).upper() if match else None


def extract_function(message: str) -> str | None:
    match = FUNCTION_RE.search(message)
    return match.group(1) if match else None


def extract_count_type(message: str) -> str | None:
    """`How many HH nodes` → `HH`; None for `how many nodes`."""
    match = COUNT_TYPE_RE.search(message)
    return match.group(1) if match else None


def extract_search_term(message: str) -> str | None:
    match = TERM_RE.search(message)
    return match.group(1) if match else None


def extract_bare_type(message: str) -> str | None:
    """`list all HH nodes` → `HH`; the code must be written in capitals."""
    match = BARE_TYPE_RE.search(message)
    return match.group(1) if match else None


# ── Classification ────────────────────────────────────────────────────────────

def _has(pattern: str) -> Callable[[str], bool]:
    regex = re.compile(pattern)
    return lambda text: bool(regex.search(text))


_mentions_source = _has(r"\bsources?\b|\btruth\b")
_search_words    = _has(r"\b(search|find|list)\b|\bshow\b.*\bnodes?\b")

# Evaluated on the lower-cased message; order is precedence.
INTENT_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("similarity",   _has(r"similar|alike|comparable")),
    ("impact",       _has(r"impact|affect|influence|consequence")),
    ("dependency",   _has(r"dependenc|dependent|depends? on|connected to")),
    ("list_sources", lambda m: _search_words(m) and _mentions_source(m)),
    ("node_search",  _search_words),
]

GENERAL_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("help",          _has(r"\bhelp\b|\bcommands?\b")),
    ("node_count",    _has(r"how\s+many\b.*\bnodes?\b")),
    ("node_describe", lambda m: bool(re.search(r"describe|description", m)) and bool(re.search(r"\bnodes?\b", m))),
    ("system_status", _has(r"\b(status|health|system)\b")),
    ("list_sources",  lambda m: bool(re.search(r"\b(list|show)\b", m)) and _mentions_source(m)),
]

DEFAULT_INTENT = "help"


def classify(message: str) -> str:
    text = message.lower()
    for name, predicate in INTENT_RULES + GENERAL_RULES:
        if predicate(text):
            return name
    return DEFAULT_INTENT


# ── Context / response ────────────────────────────────────────────────────────

@dataclass
class ChatContext:
    """What a handler may look at. Callables are queries bound by the router."""
    threads:       list[dict] = field(default_factory=list)
    sources:       list[dict] = field(default_factory=list)
    schema:        dict | None = None
    dependencies:  Callable[[str], Outcome] | None = None
    graph_counts:  Callable[[], dict | None] | None = None
    executor_mode: str = "local"


@dataclass
class ChatResponse:
    response:      str
    analysis_type: str
    data:          Any = None

    def to_dict(self) -> dict:
        return asdict(self)


def _scoped_threads(threads: list[dict], source_code: str | None) -> list[dict]:
    if not source_code:
        return threads
    return [t for t in threads if source_from_tq_name(t.get("tqName")) == source_code]


def _node_label(record: dict) -> str:
    key = record.get("id") or record.get("nodeKey")
    parts = [p for p in (record.get("type"), record.get("functionName")) if p]
    return f"{key} ({', '.join(parts)})" if parts else str(key)


# ── Handlers ──────────────────────────────────────────────────────────────────

def handle_similarity(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    node_id = extract_node_id(message, ctx.threads)
    node_type = extract_type(message)
    function_name = extract_function(message)
    if not (node_id or node_type or function_name):
        raise MalformedInputError(
            "Which node should I compare? Include a node id such as HH@id@934, "
            "or a hint like 'type: HH' or 'function: validateHeader'."
        )
    hint = node_id or node_type or function_name

    if not ctx.threads:
        results = demo_similar_nodes(hint)
        lines = [f"• {r.node_id} ({r.source_code}) - similarity {r.similarity:.2f}, {r.impact_level}" for r in results]
        return ChatResponse(
            response=f"{DEMO_NOTICE} No thread data is loaded. Example of similar nodes for {hint}:\n" + "\n".join(lines),
            analysis_type="similarity",
            data={"target": hint, "results": [r.to_dict() for r in results], "synthetic": True},
        )

    target = (find_node(ctx.threads, node_id) if node_id else None) or Node(
        id=node_id, type=node_type, function_name=function_name,
    )
    results = find_similar_by_prefix(ctx.threads, target, limit=MAX_LISTED)
    if not results:
        text = f"No nodes similar to {hint} were found."
    else:
        lines = [
            f"• {r.node_id} ({r.source_code}) - similarity {r.similarity:.2f}, {r.impact_level}"
            for r in results
        ]
        text = f"Found {len(results)} nodes similar to {hint}:\n" + "\n".join(lines)
    return ChatResponse(
        response=text,
        analysis_type="similarity",
        data={"target": hint, "results": [r.to_dict() for r in results], "synthetic": False},
    )


def handle_impact(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    node_id = extract_node_id(message, ctx.threads)
    if not node_id:
        raise MalformedInputError(
            "Which node's impact should I assess? Include a node id such as HH@id@934."
        )
    assessment = assess_impact(ctx.threads, node_id, schema=ctx.schema)
    summary = assessment.impact_summary

    lines = [
        f"**Impact assessment for {node_id}**",
        f"• Estimated impact score: {summary.estimated_impact_score}/100",
        f"• Affected nodes: {summary.total_affected_nodes}",
    ]
    if summary.source_breakdown:
        lines.append("• Sources: " + ", ".join(f"{k} ({v})" for k, v in summary.source_breakdown.items()))
    if summary.severity_breakdown:
        lines.append("• Severity: " + ", ".join(f"{k} {v}" for k, v in summary.severity_breakdown.items()))
    lines.append("")
    lines.append("**Recommendations:**")
    lines.extend(f"• {r}" for r in assessment.recommendations)
    return ChatResponse(response="\n".join(lines), analysis_type="impact", data=assessment.to_dict())


def handle_dependency(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    node_id = extract_node_id(message, ctx.threads)
    if not node_id:
        raise MalformedInputError(
            "Which node's dependencies should I look up? Include a node id such as HH@id@934."
        )

    if not ctx.threads:
        records = demo_dependencies(node_id)
        lines = [f"• {r.node_id} (distance {r.distance}, {r.system})" for r in records]
        return ChatResponse(
            response=f"{DEMO_NOTICE} No thread data is loaded. Example dependencies of {node_id}:\n" + "\n".join(lines),
            analysis_type="dependency",
            data={"node_id": node_id, "dependencies": [r.to_dict() for r in records], "synthetic": True},
        )

    if find_node(ctx.threads, node_id) is None:
        raise NodeNotFoundError(node_id)

    outcome = ctx.dependencies(node_id) if ctx.dependencies else Empty("No graph executor configured")
    records = outcome.data
    if outcome.status == "degraded":
        text = f"Dependency information for {node_id} is unavailable right now: {outcome.reason}"
    elif not records:
        text = f"{node_id} has no downstream dependencies."
    else:
        lines = [
            f"• {r.node_id} (distance {r.distance}{', ' + r.system if r.system else ''})"
            for r in records[:MAX_LISTED]
        ]
        more = f"\n…and {len(records) - MAX_LISTED} more" if len(records) > MAX_LISTED else ""
        text = f"{node_id} has {len(records)} downstream dependencies:\n" + "\n".join(lines) + more
    return ChatResponse(
        response=text,
        analysis_type="dependency",
        data={
            "node_id":      node_id,
            "dependencies": [r.to_dict() for r in records],
            "outcome":      describe(outcome),
            "synthetic":    False,
        },
    )


def handle_node_search(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    id_match = NODE_ID_RE.search(message)
    criteria = {
        "id":       id_match.group(0) if id_match else None,
        "type":     extract_type(message) or extract_bare_type(message),
        "function": extract_function(message),
        "term":     extract_search_term(message),
    }
    criteria = {k: v for k, v in criteria.items() if v}
    if not criteria:
        raise MalformedInputError(
            "What should I search for? Try 'find type: HH', 'search function: validateHeader' "
            "or 'find nodes matching payment'."
        )

    matches = []
    for thread, node in iter_thread_nodes(_scoped_threads(ctx.threads, source_code)):
        if "id" in criteria and not node.matches(criteria["id"]):
            continue
        if "type" in criteria and (node.type or "").upper() != criteria["type"]:
            continue
        if "function" in criteria and criteria["function"].lower() not in (node.function_name or "").lower():
            continue
        if "term" in criteria:
            haystack = " ".join(
                v for v in (node.key, node.class_, node.function_name, node.description) if v
            ).lower()
            if criteria["term"].lower() not in haystack:
                continue
        record = node.to_record()
        record["thread_id"] = thread.get("threadId")
        record["source_code"] = source_from_tq_name(thread.get("tqName"))
        matches.append(record)

    wanted = ", ".join(f"{k}={v}" for k, v in criteria.items())
    scope = f" in {source_code}" if source_code else ""
    if not matches:
        text = f"No nodes matched {wanted}{scope}."
    else:
        lines = [f"• {_node_label(m)} - {m['source_code']}" for m in matches[:MAX_LISTED]]
        more = f"\n…and {len(matches) - MAX_LISTED} more" if len(matches) > MAX_LISTED else ""
        text = f"Found {len(matches)} nodes matching {wanted}{scope}:\n" + "\n".join(lines) + more
    return ChatResponse(
        response=text,
        analysis_type="node_search",
        data={"criteria": criteria, "total": len(matches), "results": matches},
    )


def handle_help(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    commands = [
        "• **Similarity**: 'find similar nodes to HH@id@934'",
        "• **Impact**: 'what is the impact of HH@id@934'",
        "• **Dependencies**: 'what depends on HH@id@934'",
        "• **Search**: 'find type: HH', 'search function: validateHeader'",
        "• **Counts**: 'how many HH nodes'",
        "• **Details**: 'describe node HH@id@934'",
        "• **System Info**: 'status', 'health', 'list sources'",
    ]
    text = "**Available Commands:**\n" + "\n".join(commands)
    if source_code:
        text += f"\n\n**Current Source**: {source_code}"
    text += "\n\n**Note**: AI Assistant is disabled. Answers come from keyword matching."
    return ChatResponse(response=text, analysis_type="help")


def handle_node_count(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    requested = extract_count_type(message)

    if not ctx.threads:
        counts = demo_node_counts(requested)
        total = counts[requested] if requested else sum(counts.values())
        label = f"{requested} nodes" if requested else "nodes"
        return ChatResponse(
            response=f"{DEMO_NOTICE} No thread data is loaded. Example: {total} {label}.",
            analysis_type="node_count",
            data={"requested_type": requested, "count": total, "by_type": counts, "synthetic": True},
        )

    by_type = Counter(
        node.type or "UNTYPED"
        for _, node in iter_thread_nodes(_scoped_threads(ctx.threads, source_code))
    )
    scope = f" in {source_code}" if source_code else ""
    if requested:
        count = by_type.get(requested, 0)
        text = f"There are {count} {requested} nodes{scope}."
    else:
        count = sum(by_type.values())
        breakdown = ", ".join(f"{t} {n}" for t, n in by_type.most_common())
        text = f"There are {count} nodes{scope} across {len(by_type)} types" + (f": {breakdown}" if breakdown else ".")
    return ChatResponse(
        response=text,
        analysis_type="node_count",
        data={"requested_type": requested, "count": count, "by_type": dict(by_type), "synthetic": False},
    )


def handle_node_describe(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    node_id = extract_node_id(message, ctx.threads)
    if not node_id:
        raise MalformedInputError("Which node should I describe? Include a node id such as HH@id@934.")
    found = find_node_with_thread(ctx.threads, node_id)
    if found is None:
        raise NodeNotFoundError(node_id)
    thread, node = found

    source = source_from_tq_name(thread.get("tqName"))
    lines = [f"**Node {node.key}**"]
    for label, value in (
        ("Type", node.type),
        ("Class", node.class_),
        ("Function", node.function_name),
        ("Description", node.description),
    ):
        if value:
            lines.append(f"• {label}: {value}")
    lines.append(f"• Source: {source} (thread {thread.get('threadId')})")
    for key, value in node.extra.items():
        lines.append(f"• {key}: {value}")

    record = node.to_record()
    return ChatResponse(
        response="\n".join(lines),
        analysis_type="node_describe",
        data={"node": record, "thread_id": thread.get("threadId"), "source_code": source},
    )


def handle_system_status(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    active = sum(1 for s in ctx.sources if s.get("status") == "active")
    node_total = sum(1 for _ in iter_thread_nodes(ctx.threads))
    graph = ctx.graph_counts() if ctx.graph_counts else None

    lines = [
        "**System Status:**",
        f"• Total Sources: {len(ctx.sources)}",
        f"• Active Sources: {active}",
        f"• System Health: {'Good' if active == len(ctx.sources) else 'Degraded'}",
        f"• Threads: {len(ctx.threads)}",
        f"• Nodes: {node_total}",
        f"• Graph executor: {ctx.executor_mode}",
    ]
    if graph:
        lines.append(f"• Graph: {graph.get('vertices')} vertices, {graph.get('edges')} edges")
    else:
        lines.append("• Graph: unavailable")
    lines.append("• Mode: Direct Mode (AI disabled)")
    return ChatResponse(
        response="\n".join(lines),
        analysis_type="system_status",
        data={
            "total":         len(ctx.sources),
            "healthy":       active,
            "threads":       len(ctx.threads),
            "nodes":         node_total,
            "executor_mode": ctx.executor_mode,
            "graph":         graph,
        },
    )


def handle_list_sources(message: str, ctx: ChatContext, source_code: str | None) -> ChatResponse:
    if not ctx.sources:
        return ChatResponse(response="No sources are registered.", analysis_type="list_sources", data=[])
    lines = [f"• **{s.get('name')}** ({s.get('code')}) - {s.get('status')}" for s in ctx.sources]
    text = "**Available Sources:**\n" + "\n".join(lines) + f"\n\nTotal: {len(ctx.sources)} sources"
    return ChatResponse(response=text, analysis_type="list_sources", data=ctx.sources)


HANDLERS: dict[str, Callable[[str, ChatContext, str | None], ChatResponse]] = {
    "similarity":    handle_similarity,
    "impact":        handle_impact,
    "dependency":    handle_dependency,
    "node_search":   handle_node_search,
    "help":          handle_help,
    "node_count":    handle_node_count,
    "node_describe": handle_node_describe,
    "system_status": handle_system_status,
    "list_sources":  handle_list_sources,
}


def interpret(
    message:     str,
    source_code: str | None = None,
    context:     ChatContext | None = None,
) -> ChatResponse:
    """
    Answer a free-text message. Never raises for user input: missing
    parameters become a prompt, unknown nodes a "not found" sentence.
    """
    ctx = context or ChatContext()
    intent = classify(message)
    logger.debug("Classified %r as %s", message, intent)
    try:
        return HANDLERS[intent](message, ctx, source_code)
    except MalformedInputError as exc:
        return ChatResponse(response=exc.prompt, analysis_type=intent, data={"needs_input": True})
    except NodeNotFoundError as exc:
        return ChatResponse(
            response=f"{exc}. Check the id and try again, or ask 'find type: HH' to browse nodes.",
            analysis_type=intent,
            data={"node_id": exc.node_id, "found": False},
        )
