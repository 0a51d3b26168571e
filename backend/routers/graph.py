from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from config import get_settings
from db import get_db
from queries.graph import get_executor, ping
from queries.schema import get_schema_cache
from queries.threads import count_store

router = APIRouter()


class GraphQueryRequest(BaseModel):
    query:    str
    bindings: dict[str, Any] = Field(default_factory=dict)


@router.post("/api/graph/query")
def graph_query(req: GraphQueryRequest):
    """Raw passthrough: the executor's QueryResult, unmodified."""
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="query must not be empty")
    conn     = get_db()
    executor = get_executor(conn, get_settings())
    conn.close()
    return executor.execute(req.query, req.bindings).to_dict()


@router.get("/api/health")
def health():
    conn     = get_db()
    store    = count_store(conn)
    executor = get_executor(conn, get_settings())
    conn.close()

    graph = ping(executor)
    return {
        "status": "ok" if graph["ok"] else "degraded",
        "store":  store,
        "graph":  graph,
        "schema": get_schema_cache().state(),
    }
