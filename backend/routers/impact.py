from functools import partial

from fastapi import APIRouter, HTTPException

from config import get_settings
from db import get_db
from queries.graph import fetch_impact_connections, get_executor
from queries.schema import get_schema_cache
from queries.threads import fetch_threads
from analytics.errors import NodeNotFoundError
from analytics.impact import assess_impact
from analytics.outcome import describe
from analytics.structural import graph_impact, impact_from_local

router = APIRouter()


@router.get("/api/impact/{node_id}")
def impact_assessment(node_id: str):
    conn    = get_db()
    threads = fetch_threads(conn)
    conn.close()
    try:
        assessment = assess_impact(threads, node_id, schema=get_schema_cache().get())
    except NodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return assessment.to_dict()


@router.get("/api/impact/{node_id}/graph")
def graph_impact_assessment(node_id: str):
    conn     = get_db()
    threads  = fetch_threads(conn)
    executor = get_executor(conn, get_settings())
    conn.close()

    schema = get_schema_cache().get()
    try:
        outcome = graph_impact(
            partial(fetch_impact_connections, executor),
            node_id,
            fallback=lambda nid: impact_from_local(assess_impact(threads, nid, schema=schema)),
        )
    except NodeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return {**outcome.data.to_dict(), "outcome": describe(outcome)}
