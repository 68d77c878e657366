"""Core configuration and constants.

Uses environment variables for secrets and configuration. Follows PEP8 and Google style docstrings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal
import os

from pydantic import BaseModel


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: App display name.
        environment: Runtime environment.
        api_host: Host for FastAPI server.
        api_port: Port for FastAPI server.
        api_key: Optional key required in ``X-API-Key`` for mutating endpoints.
        log_level: Logging level string.
        log_dir: Directory for the rotating log file; no file sink when unset.
        model_path: Filesystem path of the YOLO pose ONNX artifact.
        model_autoload: Load the model when the API starts.
        model_min_bytes: Smallest plausible artifact size; smaller files are rejected.
        detection_confidence: Objectness floor for selecting a detection slot.
        keypoint_confidence: Landmark confidence floor used by the classifier.
        debounce_window: Number of recent per-frame verdicts kept per condition.
        debounce_threshold: Positive verdicts within the window needed to report a condition.
        analysis_interval_s: Default spacing between accepted cycles in power-save mode.
        power_save: Whether adaptive rate control starts enabled.
    """

    app_name: str = "Posture Nudge"
    environment: Literal["dev", "prod", "test"] = "dev"

    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str | None = os.getenv("LOG_DIR")

    # Security & CORS
    api_key: str | None = os.getenv("API_KEY")
    exposed_origins: list[str] = (
        os.getenv("EXPOSED_ORIGINS", "*").split(",") if os.getenv("EXPOSED_ORIGINS") else ["*"]
    )

    # Pose model
    model_path: str = os.getenv("POSE_MODEL_PATH", "models/yolo11n-pose.onnx")
    model_autoload: bool = _env_flag("POSE_MODEL_AUTOLOAD", "1")
    model_min_bytes: int = int(os.getenv("POSE_MODEL_MIN_BYTES", "1000000"))
    model_input_size: int = int(os.getenv("POSE_MODEL_INPUT_SIZE", "640"))
    model_input_name: str = os.getenv("POSE_MODEL_INPUT_NAME", "images")
    model_output_name: str = os.getenv("POSE_MODEL_OUTPUT_NAME", "output0")
    model_intra_threads: int = int(os.getenv("POSE_MODEL_INTRA_THREADS", "4"))

    detection_confidence: float = float(os.getenv("POSE_DETECTION_CONFIDENCE", "0.5"))
    keypoint_confidence: float = float(os.getenv("POSE_KEYPOINT_CONFIDENCE", "0.5"))

    # Temporal smoothing: report a condition when threshold of the last window frames agree
    debounce_window: int = int(os.getenv("DEBOUNCE_WINDOW", "3"))
    debounce_threshold: int = int(os.getenv("DEBOUNCE_THRESHOLD", "2"))

    turtle_neck_sensitivity: str = os.getenv("TURTLE_NECK_SENSITIVITY", "normal")
    shoulder_sensitivity: str = os.getenv("SHOULDER_SENSITIVITY", "normal")

    # Adaptive sampling (only applied while power_save is on)
    analysis_interval_s: float = float(os.getenv("ANALYSIS_INTERVAL_S", "3.0"))
    analysis_interval_min_s: float = float(os.getenv("ANALYSIS_INTERVAL_MIN_S", "1.0"))
    analysis_interval_max_s: float = float(os.getenv("ANALYSIS_INTERVAL_MAX_S", "10.0"))
    power_save: bool = _env_flag("POWER_SAVE", "0")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
