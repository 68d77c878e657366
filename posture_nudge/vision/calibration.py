"""Personalized baseline captured from one neutral-posture frame."""
from __future__ import annotations

import threading

from loguru import logger

from posture_nudge.core.errors import CalibrationError
from posture_nudge.vision.classifier import CalibrationBaseline, compute_ratios
from posture_nudge.vision.keypoints import PoseKeypoints


class CalibrationStore:
    """Holds the current baseline as an immutable snapshot.

    Readers get the whole ``CalibrationBaseline`` object, so a concurrent
    recalibration is seen either entirely or not at all.
    """

    def __init__(self, min_confidence: float = 0.5) -> None:
        self.min_confidence = float(min_confidence)
        self._lock = threading.Lock()
        self._baseline = CalibrationBaseline()

    def snapshot(self) -> CalibrationBaseline:
        with self._lock:
            return self._baseline

    def is_calibrated(self) -> bool:
        return not self.snapshot().is_empty()

    def calibrate(self, keypoints: PoseKeypoints) -> CalibrationBaseline:
        """Replace the baseline with the ratios measured on ``keypoints``.

        Ratios whose landmarks are below the confidence floor are stored as
        ``None``; the previous baseline is not merged in.

        Raises:
            CalibrationError: none of the three ratios could be computed.
        """
        baseline = compute_ratios(keypoints, self.min_confidence)
        if baseline.is_empty():
            raise CalibrationError("no confident face or shoulder landmarks to calibrate from")
        with self._lock:
            self._baseline = baseline
        logger.info(
            "Baseline calibrated: face_shoulder={} shoulder_alignment={} head_forward={}",
            baseline.face_shoulder_ratio,
            baseline.shoulder_alignment_ratio,
            baseline.head_forward_ratio,
        )
        return baseline

    def clear(self) -> None:
        with self._lock:
            self._baseline = CalibrationBaseline()
