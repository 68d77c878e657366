"""Posture analysis engine: inference, classification, smoothing and rate control."""
from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from posture_nudge.core.config import Settings
from posture_nudge.core.errors import NoDetectionError
from posture_nudge.vision.calibration import CalibrationStore
from posture_nudge.vision.classifier import (
    CalibrationBaseline,
    Condition,
    SensitivityConfig,
    SensitivityLevel,
    average_confidence,
    compute_ratios,
    detect_shoulder_misalignment,
    detect_turtle_neck,
    posture_score,
    recommendations,
)
from posture_nudge.vision.debounce import TemporalDebouncer
from posture_nudge.vision.decoder import decode_keypoints
from posture_nudge.vision.keypoints import PoseKeypoints
from posture_nudge.vision.preprocess import preprocess, validate_rgb
from posture_nudge.vision.rate import AdaptiveRateController
from posture_nudge.vision.session import ModelSession, SessionFactory


@dataclass
class AnalysisResult:
    turtle_neck: bool
    shoulder_misalignment: bool
    posture_score: int
    confidence: float
    recommendations: List[str]
    raw_turtle_neck: bool
    raw_shoulder_misalignment: bool
    ratios: Dict[str, Optional[float]] = field(default_factory=dict)
    latency_ms: float = 0.0
    timestamp_utc: float = field(default_factory=lambda: time.time())

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FrameVerdict:
    """Raw, pre-debounce classification of one frame."""

    turtle_neck: bool
    shoulder_misalignment: bool
    posture_score: int
    ratios: CalibrationBaseline


class PostureEngine:
    """Facade the shell and API call into.

    Each piece of state sits behind its own lock (session, baseline, history,
    sensitivity, interval) so that e.g. a sensitivity change never waits on an
    in-flight inference. The engine never schedules work itself.
    """

    def __init__(
        self,
        *,
        session: Optional[ModelSession] = None,
        input_size: int = 640,
        detection_confidence: float = 0.5,
        keypoint_confidence: float = 0.5,
        debounce_window: int = 3,
        debounce_threshold: int = 2,
        turtle_neck_sensitivity: "str | int | SensitivityLevel" = SensitivityLevel.NORMAL,
        shoulder_sensitivity: "str | int | SensitivityLevel" = SensitivityLevel.NORMAL,
        rate: Optional[AdaptiveRateController] = None,
    ) -> None:
        self.session = session or ModelSession()
        self.input_size = int(input_size)
        self.detection_confidence = float(detection_confidence)
        self.keypoint_confidence = float(keypoint_confidence)
        self.calibration = CalibrationStore(self.keypoint_confidence)
        self.debouncer = TemporalDebouncer(debounce_window, debounce_threshold)
        self.sensitivity = SensitivityConfig(turtle_neck_sensitivity, shoulder_sensitivity)
        self.rate = rate or AdaptiveRateController()

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: Optional[SessionFactory] = None) -> "PostureEngine":
        session = ModelSession(
            min_bytes=settings.model_min_bytes,
            input_name=settings.model_input_name,
            output_name=settings.model_output_name,
            intra_threads=settings.model_intra_threads,
            session_factory=session_factory,
        )
        rate = AdaptiveRateController(
            settings.analysis_interval_s,
            settings.analysis_interval_min_s,
            settings.analysis_interval_max_s,
            power_save=settings.power_save,
        )
        return cls(
            session=session,
            input_size=settings.model_input_size,
            detection_confidence=settings.detection_confidence,
            keypoint_confidence=settings.keypoint_confidence,
            debounce_window=settings.debounce_window,
            debounce_threshold=settings.debounce_threshold,
            turtle_neck_sensitivity=settings.turtle_neck_sensitivity,
            shoulder_sensitivity=settings.shoulder_sensitivity,
            rate=rate,
        )

    # --- Model ----------------------------------------------------------

    def load_model(self, path: str | Path) -> None:
        try:
            self.session.load(path)
        except Exception as exc:
            logger.error("Pose model load failed: {}", exc)
            raise

    def unload_model(self) -> None:
        self.session.unload()
        logger.info("Pose model unloaded")

    def is_ready(self) -> bool:
        return self.session.is_ready()

    # --- Analysis -------------------------------------------------------

    def extract_keypoints(self, image: np.ndarray) -> PoseKeypoints:
        """Preprocess, infer and decode one RGB frame."""
        rgb = validate_rgb(image)
        height, width = rgb.shape[:2]
        tensor = preprocess(rgb, self.input_size)
        output = self.session.run(tensor)
        return decode_keypoints(
            output,
            width,
            height,
            input_size=self.input_size,
            confidence_floor=self.detection_confidence,
        )

    def classify(self, keypoints: PoseKeypoints) -> FrameVerdict:
        baseline = self.calibration.snapshot()
        turtle = detect_turtle_neck(keypoints, baseline, self.sensitivity.turtle_neck(), self.keypoint_confidence)
        shoulder = detect_shoulder_misalignment(
            keypoints,
            baseline.shoulder_alignment_ratio,
            self.sensitivity.shoulder(),
            self.keypoint_confidence,
        )
        return FrameVerdict(
            turtle_neck=turtle,
            shoulder_misalignment=shoulder,
            posture_score=posture_score(turtle, shoulder),
            ratios=compute_ratios(keypoints, self.keypoint_confidence),
        )

    def analyze(self, image: np.ndarray, *, force: bool = False) -> Optional[AnalysisResult]:
        """Run one analysis cycle.

        Returns ``None`` when power-save gating skips the frame (unless
        ``force``). Raises ``AnalysisError`` subclasses for per-frame failures;
        on ``NoDetectionError`` the detection history is left untouched.
        """
        if not force and not self.rate.try_begin():
            return None
        start = time.perf_counter()
        try:
            keypoints = self.extract_keypoints(image)
        except NoDetectionError:
            logger.debug("No body detected in frame")
            raise
        return self._finish_cycle(keypoints, start)

    def analyze_keypoints(self, keypoints: PoseKeypoints) -> AnalysisResult:
        """Classification and smoothing for already-decoded keypoints (no gating)."""
        return self._finish_cycle(keypoints, time.perf_counter())

    def _finish_cycle(self, keypoints: PoseKeypoints, start: float) -> AnalysisResult:
        verdict = self.classify(keypoints)
        turtle = self.debouncer.update(Condition.TURTLE_NECK, verdict.turtle_neck)
        shoulder = self.debouncer.update(Condition.SHOULDER_MISALIGNMENT, verdict.shoulder_misalignment)
        interval = self.rate.record_result(verdict.posture_score)
        latency_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(
            "posture raw=({}, {}) final=({}, {}) score={} interval={:.1f}s latency={:.1f}ms",
            verdict.turtle_neck,
            verdict.shoulder_misalignment,
            turtle,
            shoulder,
            verdict.posture_score,
            interval,
            latency_ms,
        )
        return AnalysisResult(
            turtle_neck=turtle,
            shoulder_misalignment=shoulder,
            posture_score=verdict.posture_score,
            confidence=round(average_confidence(keypoints), 4),
            recommendations=recommendations(turtle, shoulder),
            raw_turtle_neck=verdict.turtle_neck,
            raw_shoulder_misalignment=verdict.shoulder_misalignment,
            ratios=asdict(verdict.ratios),
            latency_ms=round(latency_ms, 2),
        )

    # --- Calibration ----------------------------------------------------

    def calibrate(self, image: np.ndarray) -> CalibrationBaseline:
        keypoints = self.extract_keypoints(image)
        return self.calibrate_keypoints(keypoints)

    def calibrate_keypoints(self, keypoints: PoseKeypoints) -> CalibrationBaseline:
        try:
            return self.calibration.calibrate(keypoints)
        except Exception as exc:
            logger.warning("Calibration failed: {}", exc)
            raise

    def clear_calibration(self) -> None:
        self.calibration.clear()
        logger.info("Calibration cleared")

    # --- Configuration --------------------------------------------------

    def set_sensitivity(self, condition: "str | Condition", level: "str | int | SensitivityLevel") -> None:
        parsed = self.sensitivity.set_level(condition, level)
        logger.info("Sensitivity {} -> {}", Condition(condition).value, parsed.value)

    def set_debounce_threshold(self, count: int) -> None:
        self.debouncer.set_threshold(count)
        logger.info("Debounce threshold -> {}/{}", count, self.debouncer.window)

    def update_settings(
        self,
        *,
        turtle_neck_sensitivity: "str | int | SensitivityLevel | None" = None,
        shoulder_sensitivity: "str | int | SensitivityLevel | None" = None,
        debounce_threshold: Optional[int] = None,
        power_save: Optional[bool] = None,
    ) -> None:
        """Apply several settings at once.

        Every given value is validated before any is applied, so a
        ``ValueError`` leaves the engine unchanged.
        """
        turtle = SensitivityLevel.parse(turtle_neck_sensitivity) if turtle_neck_sensitivity is not None else None
        shoulder = SensitivityLevel.parse(shoulder_sensitivity) if shoulder_sensitivity is not None else None
        if debounce_threshold is not None:
            self.debouncer.check_threshold(debounce_threshold)
        if turtle is not None:
            self.set_sensitivity(Condition.TURTLE_NECK, turtle)
        if shoulder is not None:
            self.set_sensitivity(Condition.SHOULDER_MISALIGNMENT, shoulder)
        if debounce_threshold is not None:
            self.set_debounce_threshold(debounce_threshold)
        if power_save is not None:
            self.set_power_save(power_save)

    def set_debounce_window(self, size: int) -> None:
        self.debouncer.set_window(size)
        logger.info("Debounce window -> {}", size)

    def set_power_save(self, enabled: bool) -> None:
        self.rate.set_power_save(enabled)

    def reset_history(self) -> None:
        self.debouncer.reset()

    def status(self) -> Dict[str, Any]:
        model_path = self.session.model_path
        return {
            "ready": self.is_ready(),
            "model_path": str(model_path) if model_path else None,
            "calibrated": self.calibration.is_calibrated(),
            "baseline": asdict(self.calibration.snapshot()),
            "sensitivity": self.sensitivity.as_dict(),
            "debounce_window": self.debouncer.window,
            "debounce_threshold": self.debouncer.threshold,
            "power_save": self.rate.power_save,
            "analysis_interval_s": round(self.rate.interval_s, 3),
        }
