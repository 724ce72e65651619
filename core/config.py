from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from core.cache import SWEEP_INTERVAL_SECONDS


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} inválido: {raw!r}") from None


def _allowed_origins() -> List[str]:
    origins = os.getenv("ALLOWED_ORIGINS", "*")
    if origins == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


@dataclass(frozen=True)
class CacheSettings:
    capacity: int = 1024
    ttl_seconds: float = 5.0
    sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CacheSettings":
        return cls(
            capacity=_env_number("CACHE_CAPACITY", "1024", int),
            ttl_seconds=_env_number("CACHE_TTL_SECONDS", "5", float),
            sweep_interval_seconds=_env_number(
                "CACHE_SWEEP_INTERVAL_SECONDS", str(SWEEP_INTERVAL_SECONDS), float
            ),
            allowed_origins=_allowed_origins(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
