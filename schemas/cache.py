from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, StrictInt

MISS_VALUE = -1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class CacheSetRequest(BaseModel):
    """Payload de /cache/set."""
    model_config = ConfigDict(extra="ignore")

    key: StrictInt = Field(..., ge=INT64_MIN, le=INT64_MAX, description="Chave inteira")
    value: StrictInt = Field(..., ge=INT64_MIN, le=INT64_MAX, description="Valor inteiro")


class CacheSetResponse(BaseModel):
    ok: bool = True


class CacheGetResponse(BaseModel):
    value: int = Field(..., description="Valor armazenado ou -1 quando ausente/expirado")
    expiration: int = Field(
        ...,
        description="Unix timestamp informativo (agora + TTL configurado), não o tempo restante da entrada.",
    )
