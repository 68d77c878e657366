"""Pydantic schemas for request/response payloads.

All endpoints use a standardized JSON envelope: {"success": bool, "data": any, "error": str|None}
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class Envelope(BaseModel):
    success: bool = True
    data: Optional[dict] = None
    error: Optional[str] = None


class ImageInput(BaseModel):
    # base64 or data URL (data:image/jpeg;base64,...)
    image: str = Field(min_length=1)


class AnalyzeInput(ImageInput):
    force: bool = False


class ModelLoadInput(BaseModel):
    path: Optional[str] = None


class SettingsInput(BaseModel):
    turtle_neck_sensitivity: Optional[str | int] = None
    shoulder_sensitivity: Optional[str | int] = None
    debounce_threshold: Optional[int] = Field(default=None, ge=1)
    power_save: Optional[bool] = None


class Ratios(BaseModel):
    face_shoulder_ratio: float | None = None
    shoulder_alignment_ratio: float | None = None
    head_forward_ratio: float | None = None


class AnalysisOutput(BaseModel):
    turtle_neck: bool
    shoulder_misalignment: bool
    posture_score: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    recommendations: List[str]
    raw_turtle_neck: bool
    raw_shoulder_misalignment: bool
    ratios: Ratios
    latency_ms: float | None = None
    timestamp_utc: float | None = None


class StatusOutput(BaseModel):
    ready: bool
    model_path: str | None = None
    calibrated: bool
    baseline: Ratios
    sensitivity: dict[str, str]
    debounce_window: int
    debounce_threshold: int
    power_save: bool
    analysis_interval_s: float
