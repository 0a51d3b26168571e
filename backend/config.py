"""
Runtime settings, read once from the environment.

A `.env` file next to the process is honoured (python-dotenv). Every value
has a default so the API boots with nothing configured: a local SQLite store
under data/, the in-process graph executor, and schema enrichment disabled.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

REPO_ROOT = Path(__file__).parent.parent


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class Settings:
    data_dir:       Path        = REPO_ROOT / "data"
    db_name:        str         = "dashboard.db"
    graph_url:      str | None  = None   # Gremlin HTTP endpoint; None → in-process executor
    graph_timeout:  float       = 10.0
    schema_url:     str | None  = None   # None → schema enrichment disabled
    schema_timeout: float       = 5.0
    schema_ttl:     float       = 300.0
    log_level:      str         = "INFO"
    cors_origins:   list[str]   = field(default_factory=lambda: ["*"])

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        data_dir=Path(os.getenv("DASHBOARD_DATA_DIR", str(REPO_ROOT / "data"))),
        db_name=os.getenv("DASHBOARD_DB", "dashboard.db"),
        graph_url=os.getenv("GRAPH_URL") or None,
        graph_timeout=_env_float("GRAPH_TIMEOUT", 10.0),
        schema_url=os.getenv("SCHEMA_URL") or None,
        schema_timeout=_env_float("SCHEMA_TIMEOUT", 5.0),
        schema_ttl=_env_float("SCHEMA_TTL", 300.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=_env_list("CORS_ORIGINS", ["*"]),
    )
