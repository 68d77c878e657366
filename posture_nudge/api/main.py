"""FastAPI application exposing the posture engine to the desktop shell.

Endpoints:
- GET /health: liveness
- /posture/*: model loading, analysis, calibration and runtime settings (JSON)
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from posture_nudge import __version__
from posture_nudge.api.routers.posture import get_engine, router as posture_router
from posture_nudge.core.config import get_settings
from posture_nudge.core.errors import ModelLoadError
from posture_nudge.core.logging_config import add_file_sink
from posture_nudge.vision.engine import PostureEngine

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    sink_id = None
    if settings.log_dir:
        sink_id = add_file_sink(settings.log_dir, settings.log_level)
    if settings.model_autoload:
        try:
            get_engine().load_model(settings.model_path)
        except ModelLoadError as exc:
            # The shell can retry through POST /posture/model once the artifact is provisioned.
            logger.warning("Pose model not loaded at startup: {}", exc)
    yield
    if sink_id is not None:
        logger.remove(sink_id)


app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.exposed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.get("/health")
async def health(engine: PostureEngine = Depends(get_engine)) -> dict:
    """Return API health status."""

    return {"status": "ok", "model_ready": engine.is_ready()}


# Routers
app.include_router(posture_router, tags=["posture"])
