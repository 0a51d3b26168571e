"""
Integration Dashboard — FastAPI Backend
Similarity, impact assessment and the command interpreter over imported
thread data.

Run:
    uvicorn main:app --reload            # from backend/
    python3 main.py
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings
from routers import chat, graph, impact, similarity, sources

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Integration Dashboard API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sources.router)
app.include_router(similarity.router)
app.include_router(impact.router)
app.include_router(chat.router)
app.include_router(graph.router)

logger.info(
    "Store at %s; graph executor %s; schema enrichment %s",
    settings.db_path,
    settings.graph_url or "local",
    "on" if settings.schema_url else "off",
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
