"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from move_improve.api import router as api_router
from move_improve.core.config import get_settings
from move_improve.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "move-improve-engine"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        f"Starting {SERVICE_NAME} (env={settings.MI_ENGINE_ENV}, "
        f"na_sentinel={settings.NA_SENTINEL!r})"
    )
    yield


app = FastAPI(
    title="Move or Improve Decision Engine",
    description="Config-driven questionnaire scoring with Improve/Move recommendations",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Liveness probe; does not touch the configuration store."""
    return JSONResponse(content={"status": "ok", "service": SERVICE_NAME}, status_code=200)


# Decision routes live under /v1/decision
app.include_router(api_router, prefix="/v1")
