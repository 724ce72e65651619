import os
import time
import uuid
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import CacheSettings
from core.errors import error_response
from routes.cache import apply_cors_defaults, initialize_cache, router as cache_router, shutdown_cache
from routes.system import SERVICE_VERSION, router as system_router

# -----------------------------
# Load env
# -----------------------------
load_dotenv()

# -----------------------------
# Logging (structured-ish)
# -----------------------------
logger = logging.getLogger("cache-api")

LOG_EXTRAS = (
    "request_id",
    "path",
    "status",
    "latency_ms",
    "removed",
    "size",
    "capacity",
    "ttl_seconds",
)

class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "msg": record.getMessage(),
        }
        # extras
        for k in LOG_EXTRAS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def configure_logging(level: str) -> None:
    logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    logger.handlers = [handler]

# -----------------------------
# App
# -----------------------------
def create_app(settings: Optional[CacheSettings] = None) -> FastAPI:
    settings = settings or CacheSettings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        initialize_cache(app, settings)
        try:
            yield
        finally:
            shutdown_cache(app)

    app = FastAPI(
        title="LRU TTL Cache API",
        description="In-memory key/value cache with LRU eviction and idle TTL expiration",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.cache = None
    app.state.settings = settings

    # -----------------------------
    # CORS
    # -----------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # -----------------------------
    # Middleware: request_id + logging
    # -----------------------------
    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        start = time.time()

        # attach to request state
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:
            latency_ms = int((time.time() - start) * 1000)
            logger.error(
                "unhandled_exception",
                exc_info=True,
                extra={
                    "request_id": request_id,
                    "path": request.url.path,
                    "status": 500,
                    "latency_ms": latency_ms,
                },
            )
            return error_response(500, "Erro interno no servidor.", request_id=request_id)

        latency_ms = int((time.time() - start) * 1000)
        logger.info(
            "request",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": latency_ms,
            },
        )
        response.headers["X-Request-Id"] = request_id
        if settings.allowed_origins == ["*"]:
            apply_cors_defaults(request.url.path, response.headers)
        return response

    # -----------------------------
    # Exception handlers
    # -----------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", None)
        logger.warning(
            "http_exception",
            extra={"request_id": request_id, "path": request.url.path, "status": exc.status_code},
        )
        return error_response(exc.status_code, str(exc.detail), request_id=request_id)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", None)
        logger.warning(
            "invalid_request_body",
            extra={"request_id": request_id, "path": request.url.path, "status": 400},
        )
        return error_response(400, "Corpo da requisição inválido.", request_id=request_id)

    # -----------------------------
    # Routes
    # -----------------------------
    app.include_router(system_router)
    app.include_router(cache_router)
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
