"""
Graph-schema document fetch — HTTP I/O only.
"""
from __future__ import annotations

from functools import lru_cache, partial

import requests

from analytics.errors import ExternalQueryError
from analytics.schema_enrichment import SchemaCache
from config import get_settings


def fetch_schema(url: str, timeout: float = 5.0) -> dict:
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        body = resp.json()
    except requests.RequestException as exc:
        raise ExternalQueryError(f"Schema fetch failed: {exc}") from exc
    except ValueError as exc:
        raise ExternalQueryError(f"Schema response is not JSON: {exc}") from exc
    if not isinstance(body, dict):
        raise ExternalQueryError(f"Schema document must be an object, got {type(body).__name__}")
    return body


@lru_cache(maxsize=1)
def get_schema_cache() -> SchemaCache:
    """The process-wide cache; disabled when SCHEMA_URL is unset."""
    settings = get_settings()
    if not settings.schema_url:
        return SchemaCache(ttl=settings.schema_ttl)
    fetcher = partial(fetch_schema, settings.schema_url, settings.schema_timeout)
    return SchemaCache(fetcher, ttl=settings.schema_ttl)
