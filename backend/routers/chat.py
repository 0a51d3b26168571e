from functools import partial
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from config import get_settings
from db import get_db
from queries.graph import fetch_dependents, fetch_graph_counts, get_executor
from queries.schema import get_schema_cache
from queries.sources import fetch_sources
from queries.threads import fetch_threads
from analytics.interpreter import ChatContext, interpret
from analytics.structural import find_dependencies

router = APIRouter()


class ChatRequest(BaseModel):
    message:     str
    source_code: Optional[str] = None


@router.post("/api/chat/interpret")
def chat_interpret(req: ChatRequest):
    if not req.message.strip():
        raise HTTPException(status_code=400, detail="message must not be empty")

    conn     = get_db()
    threads  = fetch_threads(conn)
    sources  = fetch_sources(conn)
    executor = get_executor(conn, get_settings())
    conn.close()

    ctx = ChatContext(
        threads=threads,
        sources=sources,
        schema=get_schema_cache().get(),
        dependencies=partial(find_dependencies, partial(fetch_dependents, executor)),
        graph_counts=partial(fetch_graph_counts, executor),
        executor_mode=executor.mode,
    )
    return interpret(req.message, req.source_code, ctx).to_dict()
