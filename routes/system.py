from __future__ import annotations
import os
import subprocess
from pathlib import Path
from typing import Optional
from fastapi import APIRouter, Depends

from core.cache import LRUCache
from .cache import get_cache

router = APIRouter()

SERVICE_NAME = "lru-ttl-cache"
SERVICE_VERSION = "1.0.0"

def get_git_commit_hash() -> Optional[str]:
    """Obtém o hash do commit git atual."""
    try:
        return (
            subprocess.check_output(
                ["git", "rev-parse", "HEAD"],
                cwd=Path(__file__).parent.parent,
                stderr=subprocess.DEVNULL,
            )
            .decode()
            .strip()
        )
    except (OSError, subprocess.CalledProcessError):
        return None

@router.get("/")
async def root():
    """Endpoint raiz para verificações de uptime."""
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "commit": get_git_commit_hash(),
        "env": {"log_level": os.getenv("LOG_LEVEL", "INFO")},
    }

@router.get("/health")
async def health_check():
    """Endpoint simples de health check."""
    return {"ok": True}

@router.get("/v1/system/cache")
def cache_stats(cache: LRUCache = Depends(get_cache)):
    """Contadores e ocupação atual do cache."""
    return {"ok": True, "data": {**cache.stats(), "sweeper_running": cache.sweeper_running}}
