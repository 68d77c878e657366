"""Posture analysis endpoint router.

Thin command layer over the shared PostureEngine. Handlers are plain ``def``
so FastAPI runs them in its threadpool; concurrent requests then meet at the
engine's own locks (inference is serialized, settings are not).
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, Header, HTTPException
from loguru import logger

from posture_nudge.api.schemas import (
    AnalysisOutput,
    AnalyzeInput,
    Envelope,
    ImageInput,
    ModelLoadInput,
    SettingsInput,
    StatusOutput,
)
from posture_nudge.core.config import get_settings
from posture_nudge.core.errors import PostureEngineError
from posture_nudge.vision.classifier import GENERAL_TIPS
from posture_nudge.vision.engine import PostureEngine
from posture_nudge.vision.preprocess import decode_image

router = APIRouter(prefix="/posture")


@lru_cache
def get_engine() -> PostureEngine:
    """Return the process-wide engine instance."""

    return PostureEngine.from_settings(get_settings())


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    s = get_settings()
    if getattr(s, "api_key", None) and x_api_key != s.api_key:
        raise HTTPException(status_code=401, detail="invalid_api_key")


def _failure(exc: PostureEngineError) -> Envelope:
    return Envelope(success=False, data={"message": str(exc)}, error=exc.code)


def _status(engine: PostureEngine) -> dict:
    return StatusOutput.model_validate(engine.status()).model_dump()


@router.get("/status", response_model=Envelope)
def status_endpoint(engine: PostureEngine = Depends(get_engine)) -> Envelope:
    return Envelope(success=True, data=_status(engine))


@router.post("/model", response_model=Envelope, dependencies=[Depends(require_api_key)])
def load_model_endpoint(payload: ModelLoadInput, engine: PostureEngine = Depends(get_engine)) -> Envelope:
    path = payload.path or get_settings().model_path
    try:
        engine.load_model(path)
    except PostureEngineError as exc:
        return _failure(exc)
    return Envelope(success=True, data=_status(engine))


@router.delete("/model", response_model=Envelope, dependencies=[Depends(require_api_key)])
def unload_model_endpoint(engine: PostureEngine = Depends(get_engine)) -> Envelope:
    engine.unload_model()
    return Envelope(success=True, data=_status(engine))


@router.post("/analyze", response_model=Envelope)
def analyze_endpoint(payload: AnalyzeInput, engine: PostureEngine = Depends(get_engine)) -> Envelope:
    """Analyze one frame; ``data.skipped`` is true when power save gated it."""
    try:
        image = decode_image(payload.image)
        result = engine.analyze(image, force=payload.force)
    except PostureEngineError as exc:
        if exc.code != "no_detection":
            logger.warning("posture analyze failed: {}", exc)
        return _failure(exc)
    if result is None:
        return Envelope(success=True, data={"skipped": True})
    logger.info(
        "posture score={} turtle_neck={} shoulder={} latency_ms={}",
        result.posture_score,
        result.turtle_neck,
        result.shoulder_misalignment,
        result.latency_ms,
    )
    out = AnalysisOutput.model_validate(result.to_dict())
    return Envelope(success=True, data={"skipped": False, **out.model_dump()})


@router.post("/calibrate", response_model=Envelope, dependencies=[Depends(require_api_key)])
def calibrate_endpoint(payload: ImageInput, engine: PostureEngine = Depends(get_engine)) -> Envelope:
    try:
        image = decode_image(payload.image)
        baseline = engine.calibrate(image)
    except PostureEngineError as exc:
        return _failure(exc)
    return Envelope(
        success=True,
        data={
            "face_shoulder_ratio": baseline.face_shoulder_ratio,
            "shoulder_alignment_ratio": baseline.shoulder_alignment_ratio,
            "head_forward_ratio": baseline.head_forward_ratio,
        },
    )


@router.delete("/calibration", response_model=Envelope, dependencies=[Depends(require_api_key)])
def clear_calibration_endpoint(engine: PostureEngine = Depends(get_engine)) -> Envelope:
    engine.clear_calibration()
    return Envelope(success=True, data=_status(engine))


@router.post("/settings", response_model=Envelope, dependencies=[Depends(require_api_key)])
def settings_endpoint(payload: SettingsInput, engine: PostureEngine = Depends(get_engine)) -> Envelope:
    try:
        engine.update_settings(
            turtle_neck_sensitivity=payload.turtle_neck_sensitivity,
            shoulder_sensitivity=payload.shoulder_sensitivity,
            debounce_threshold=payload.debounce_threshold,
            power_save=payload.power_save,
        )
    except ValueError as exc:
        return Envelope(success=False, data={"message": str(exc)}, error="invalid_settings")
    return Envelope(success=True, data=_status(engine))


@router.get("/tips", response_model=Envelope)
def tips_endpoint() -> Envelope:
    return Envelope(success=True, data={"tips": list(GENERAL_TIPS)})
