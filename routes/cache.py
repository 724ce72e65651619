from __future__ import annotations

import logging
import re
import time
from typing import MutableMapping, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from core.cache import LRUCache
from core.config import CacheSettings
from schemas.cache import INT64_MAX, INT64_MIN, MISS_VALUE, CacheGetResponse, CacheSetRequest, CacheSetResponse

router = APIRouter()
logger = logging.getLogger("cache-api")

_KEY_PATTERN = re.compile(r"[+-]?[0-9]+")

# Headers sent even when the request carries no Origin.
CORS_DEFAULT_HEADERS = {
    "/cache/set": {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    },
    "/cache/get": {
        "Access-Control-Allow-Origin": "*",
    },
}


def initialize_cache(app, settings: CacheSettings) -> LRUCache:
    cache = LRUCache(
        settings.capacity,
        settings.ttl_seconds,
        sweep_interval_seconds=settings.sweep_interval_seconds,
    )
    app.state.cache = cache
    logger.info(
        "cache_initialized",
        extra={"size": 0, "capacity": settings.capacity, "ttl_seconds": settings.ttl_seconds},
    )
    return cache


def shutdown_cache(app) -> None:
    cache = getattr(app.state, "cache", None)
    if cache is None:
        return
    cache.close()
    app.state.cache = None


def get_cache(request: Request) -> LRUCache:
    """Dependência que devolve o cache da aplicação."""
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise HTTPException(status_code=500, detail="Cache não inicializado.")
    return cache


def _parse_key(raw: Optional[str]) -> int:
    if raw is None or not _KEY_PATTERN.fullmatch(raw):
        raise HTTPException(status_code=400, detail="Chave inválida.")
    key = int(raw)
    if not INT64_MIN <= key <= INT64_MAX:
        raise HTTPException(status_code=400, detail="Chave inválida.")
    return key


def apply_cors_defaults(path: str, headers: MutableMapping[str, str]) -> None:
    for name, value in CORS_DEFAULT_HEADERS.get(path, {}).items():
        headers.setdefault(name, value)


@router.options("/cache/set")
@router.options("/cache/get")
async def cache_preflight():
    """Pre-flight sem corpo: responde 200 sem tocar no cache."""
    return Response(status_code=200)


@router.post("/cache/set", response_model=CacheSetResponse)
def cache_set(body: CacheSetRequest, cache: LRUCache = Depends(get_cache)):
    cache.set(body.key, body.value)
    return CacheSetResponse()


@router.get("/cache/get", response_model=CacheGetResponse)
def cache_get(key: Optional[str] = Query(default=None), cache: LRUCache = Depends(get_cache)):
    parsed = _parse_key(key)
    value, found = cache.get(parsed)
    return CacheGetResponse(
        value=value if found else MISS_VALUE,
        expiration=int(time.time() + cache.ttl_seconds),
    )
