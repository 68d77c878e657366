"""Error taxonomy raised by the posture engine.

``NoDetectionError`` is expected and frequent (nobody in frame); callers skip
alerting for that frame. ``ShapeMismatchError`` means the loaded model does not
produce the YOLO-pose layout and is treated as a compatibility bug.
"""
from __future__ import annotations


class PostureEngineError(Exception):
    """Base class for every error raised by the engine."""

    code: str = "engine_error"


class ModelLoadError(PostureEngineError):
    code = "model_load_failed"


class AnalysisError(PostureEngineError):
    """Per-frame failure; the next frame may succeed."""

    code = "analysis_failed"


class InferenceError(AnalysisError):
    code = "inference_failed"


class ModelNotLoadedError(InferenceError):
    code = "model_not_loaded"


class ShapeMismatchError(AnalysisError):
    code = "shape_mismatch"


class NoDetectionError(AnalysisError):
    code = "no_detection"


class InvalidImageError(AnalysisError):
    code = "invalid_image"


class CalibrationError(PostureEngineError):
    code = "calibration_failed"
