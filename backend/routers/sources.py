from typing import Optional

from fastapi import APIRouter, HTTPException

from db import get_db
from queries.sources import fetch_sources
from queries.threads import fetch_threads
from analytics.models import count_by_source, find_node_with_thread, source_from_tq_name

router = APIRouter()


@router.get("/api/sources")
def list_sources():
    conn    = get_db()
    sources = fetch_sources(conn)
    threads = fetch_threads(conn)
    conn.close()

    counts     = count_by_source(threads)
    registered = {s["code"] for s in sources}
    for s in sources:
        c = counts.get(s["code"], {"threads": 0, "nodes": 0})
        s["thread_count"] = c["threads"]
        s["node_count"]   = c["nodes"]
    return {
        "sources": sources,
        # threads whose prefix is not a registered source still show up here
        "unregistered": {code: c for code, c in counts.items() if code not in registered},
    }


@router.get("/api/threads")
def list_threads(prefix: Optional[str] = None):
    conn    = get_db()
    threads = fetch_threads(conn, prefix)
    conn.close()
    return {"threads": threads, "total": len(threads)}


@router.get("/api/nodes/{node_id}")
def node_detail(node_id: str):
    conn    = get_db()
    threads = fetch_threads(conn)
    conn.close()

    found = find_node_with_thread(threads, node_id)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
    thread, node = found
    return {
        "node":        node.to_record(),
        "thread_id":   thread.get("threadId"),
        "tq_name":     thread.get("tqName"),
        "source_code": source_from_tq_name(thread.get("tqName")),
    }
