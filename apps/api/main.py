"""
API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Settings, get_settings, settings
from core.dependencies import get_responder
from core.exception_handlers import register_exception_handlers
from core.logging import configure_logging
from core.responses import ResponseEnvelopeBuilder

configure_logging(settings.LOG_LEVEL, json_logs=settings.json_logs)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api.startup", env=settings.APP_ENV, log_level=settings.LOG_LEVEL)
    yield
    logger.info("api.shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middlewares
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

# ---------------------------------------------------------------------------
# Exception handlers globales
# ---------------------------------------------------------------------------

register_exception_handlers(app, lambda: ResponseEnvelopeBuilder(app_env=get_settings().APP_ENV))


# ---------------------------------------------------------------------------
# Health check (sin auth)
# ---------------------------------------------------------------------------


@app.get("/health", tags=["health"])
async def health_check(
    responder: ResponseEnvelopeBuilder = Depends(get_responder),
    app_settings: Settings = Depends(get_settings),
) -> JSONResponse:
    return responder.respond_success({"status": "ok", "env": app_settings.APP_ENV})
