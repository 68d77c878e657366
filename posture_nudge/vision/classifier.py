"""Per-frame posture geometry: ratios, turtle-neck and shoulder detectors, score.

All detectors are pure functions of the keypoints, an optional calibration
baseline and a threshold set. Low-confidence landmarks make a detector return
``False`` rather than raise.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from posture_nudge.vision.keypoints import PoseKeypoints


TURTLE_NECK_PENALTY = 30
SHOULDER_PENALTY = 20
MIN_PIXEL_SPAN = 1.0


class Condition(str, Enum):
    TURTLE_NECK = "turtle_neck"
    SHOULDER_MISALIGNMENT = "shoulder_misalignment"


class SensitivityLevel(str, Enum):
    LOOSE = "loose"
    NORMAL = "normal"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: "str | int | SensitivityLevel") -> "SensitivityLevel":
        if isinstance(value, SensitivityLevel):
            return value
        aliases = {1: cls.LOOSE, 2: cls.NORMAL, 3: cls.STRICT}
        if isinstance(value, int) and not isinstance(value, bool):
            if value in aliases:
                return aliases[value]
        elif isinstance(value, str):
            key = value.strip().lower()
            if key.isdigit() and int(key) in aliases:
                return aliases[int(key)]
            for level in cls:
                if level.value == key:
                    return level
        raise ValueError(f"unknown sensitivity level: {value!r}")


@dataclass(frozen=True)
class TurtleNeckThresholds:
    ratio_tolerance: float
    forward_tolerance: float
    uncalibrated_forward_floor: float


@dataclass(frozen=True)
class ShoulderThresholds:
    tolerance: float
    min_absolute_threshold: float
    uncalibrated_raw: float
    uncalibrated_corrected: float


TURTLE_NECK_LEVELS: Dict[SensitivityLevel, TurtleNeckThresholds] = {
    SensitivityLevel.LOOSE: TurtleNeckThresholds(0.045, 0.035, 0.11),
    SensitivityLevel.NORMAL: TurtleNeckThresholds(0.030, 0.020, 0.08),
    SensitivityLevel.STRICT: TurtleNeckThresholds(0.020, 0.010, 0.06),
}

SHOULDER_LEVELS: Dict[SensitivityLevel, ShoulderThresholds] = {
    SensitivityLevel.LOOSE: ShoulderThresholds(1.2, 0.24, 0.13, 0.20),
    SensitivityLevel.NORMAL: ShoulderThresholds(0.9, 0.18, 0.10, 0.15),
    SensitivityLevel.STRICT: ShoulderThresholds(0.6, 0.12, 0.07, 0.11),
}


@dataclass(frozen=True)
class CalibrationBaseline:
    """Neutral-posture reference ratios; each is ``None`` until calibrated."""

    face_shoulder_ratio: Optional[float] = None
    shoulder_alignment_ratio: Optional[float] = None
    head_forward_ratio: Optional[float] = None

    def is_empty(self) -> bool:
        return (
            self.face_shoulder_ratio is None
            and self.shoulder_alignment_ratio is None
            and self.head_forward_ratio is None
        )


class SensitivityConfig:
    """Runtime-selectable sensitivity level per condition."""

    def __init__(
        self,
        turtle_neck: "str | int | SensitivityLevel" = SensitivityLevel.NORMAL,
        shoulder: "str | int | SensitivityLevel" = SensitivityLevel.NORMAL,
    ) -> None:
        self._lock = threading.Lock()
        self._levels: Dict[Condition, SensitivityLevel] = {
            Condition.TURTLE_NECK: SensitivityLevel.parse(turtle_neck),
            Condition.SHOULDER_MISALIGNMENT: SensitivityLevel.parse(shoulder),
        }

    def set_level(self, condition: "str | Condition", level: "str | int | SensitivityLevel") -> SensitivityLevel:
        cond = Condition(condition)
        parsed = SensitivityLevel.parse(level)
        with self._lock:
            self._levels[cond] = parsed
        return parsed

    def level(self, condition: "str | Condition") -> SensitivityLevel:
        with self._lock:
            return self._levels[Condition(condition)]

    def turtle_neck(self) -> TurtleNeckThresholds:
        return TURTLE_NECK_LEVELS[self.level(Condition.TURTLE_NECK)]

    def shoulder(self) -> ShoulderThresholds:
        return SHOULDER_LEVELS[self.level(Condition.SHOULDER_MISALIGNMENT)]

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return {cond.value: level.value for cond, level in self._levels.items()}


# --- Ratios ---------------------------------------------------------------


def _shoulder_width(kp: PoseKeypoints) -> float:
    return abs(kp.right_shoulder.x - kp.left_shoulder.x)


def _face_height_proxy(kp: PoseKeypoints) -> float:
    shoulder_mid_y = (kp.left_shoulder.y + kp.right_shoulder.y) / 2.0
    return abs(shoulder_mid_y - kp.nose.y)


def face_shoulder_ratio(kp: PoseKeypoints, min_confidence: float = 0.5) -> Optional[float]:
    """Eye span over shoulder span; grows as the face approaches the camera."""
    if min(kp.left_eye.confidence, kp.right_eye.confidence,
           kp.left_shoulder.confidence, kp.right_shoulder.confidence) < min_confidence:
        return None
    width = _shoulder_width(kp)
    if width <= MIN_PIXEL_SPAN:
        return None
    return abs(kp.right_eye.x - kp.left_eye.x) / width


def shoulder_alignment_ratio(kp: PoseKeypoints, min_confidence: float = 0.5) -> Optional[float]:
    """Vertical shoulder asymmetry normalized by the nose-to-shoulder-line distance."""
    if min(kp.left_shoulder.confidence, kp.right_shoulder.confidence, kp.nose.confidence) < min_confidence:
        return None
    proxy = _face_height_proxy(kp)
    if proxy <= MIN_PIXEL_SPAN:
        return None
    return abs(kp.left_shoulder.y - kp.right_shoulder.y) / proxy


def head_forward_ratio(kp: PoseKeypoints, min_confidence: float = 0.5) -> Optional[float]:
    """Signed horizontal ear-center to shoulder-center offset over shoulder width."""
    if min(kp.left_ear.confidence, kp.right_ear.confidence,
           kp.left_shoulder.confidence, kp.right_shoulder.confidence) < min_confidence:
        return None
    width = _shoulder_width(kp)
    if width <= MIN_PIXEL_SPAN:
        return None
    ear_center_x = (kp.left_ear.x + kp.right_ear.x) / 2.0
    shoulder_center_x = (kp.left_shoulder.x + kp.right_shoulder.x) / 2.0
    return (ear_center_x - shoulder_center_x) / width


def compute_ratios(kp: PoseKeypoints, min_confidence: float = 0.5) -> CalibrationBaseline:
    return CalibrationBaseline(
        face_shoulder_ratio=face_shoulder_ratio(kp, min_confidence),
        shoulder_alignment_ratio=shoulder_alignment_ratio(kp, min_confidence),
        head_forward_ratio=head_forward_ratio(kp, min_confidence),
    )


# --- Detectors ------------------------------------------------------------


def is_face_too_close(
    kp: PoseKeypoints,
    baseline_ratio: Optional[float],
    thresholds: TurtleNeckThresholds,
    min_confidence: float = 0.5,
) -> bool:
    # Calibrated-only signal.
    if baseline_ratio is None:
        return False
    current = face_shoulder_ratio(kp, min_confidence)
    if current is None:
        return False
    return current > baseline_ratio + thresholds.ratio_tolerance


def is_head_forward(
    kp: PoseKeypoints,
    baseline_ratio: Optional[float],
    thresholds: TurtleNeckThresholds,
    min_confidence: float = 0.5,
) -> bool:
    current = head_forward_ratio(kp, min_confidence)
    if current is None:
        return False
    if baseline_ratio is None:
        return current > thresholds.uncalibrated_forward_floor
    return current > baseline_ratio + thresholds.forward_tolerance


def detect_turtle_neck(
    kp: PoseKeypoints,
    baseline: CalibrationBaseline,
    thresholds: TurtleNeckThresholds,
    min_confidence: float = 0.5,
) -> bool:
    return is_face_too_close(kp, baseline.face_shoulder_ratio, thresholds, min_confidence) or is_head_forward(
        kp, baseline.head_forward_ratio, thresholds, min_confidence
    )


def detect_shoulder_misalignment(
    kp: PoseKeypoints,
    baseline_ratio: Optional[float],
    thresholds: ShoulderThresholds,
    min_confidence: float = 0.5,
) -> bool:
    if min(kp.left_shoulder.confidence, kp.right_shoulder.confidence, kp.nose.confidence) < min_confidence:
        return False
    width = _shoulder_width(kp)
    if width < MIN_PIXEL_SPAN:
        return False
    proxy = _face_height_proxy(kp)
    if proxy < MIN_PIXEL_SPAN:
        return False
    height_diff = abs(kp.left_shoulder.y - kp.right_shoulder.y)
    corrected = height_diff / proxy
    if baseline_ratio is not None:
        # relative and absolute must both hold
        return corrected > baseline_ratio + thresholds.tolerance and corrected > thresholds.min_absolute_threshold
    raw = height_diff / width
    return raw > thresholds.uncalibrated_raw and corrected > thresholds.uncalibrated_corrected


def posture_score(turtle_neck: bool, shoulder_misalignment: bool) -> int:
    score = 100
    if turtle_neck:
        score -= TURTLE_NECK_PENALTY
    if shoulder_misalignment:
        score -= SHOULDER_PENALTY
    return max(0, score)


def average_confidence(kp: PoseKeypoints) -> float:
    """Mean confidence of the head and shoulder landmarks, each capped at 1.0; zeros are skipped."""
    values = [
        min(c, 1.0)
        for c in (
            kp.nose.confidence,
            kp.left_shoulder.confidence,
            kp.right_shoulder.confidence,
            kp.left_ear.confidence,
            kp.right_ear.confidence,
        )
        if c > 0.0
    ]
    if not values:
        return 0.0
    return sum(values) / len(values)


# --- Recommendations ------------------------------------------------------

GENERAL_TIPS: List[str] = [
    "Keep your neck straight and pull your shoulders back",
    "Adjust your monitor to eye level",
    "Stretch every 30 minutes",
    "Sit with your back fully against the chair",
    "Keep your feet flat on the floor",
]


def recommendations(turtle_neck: bool, shoulder_misalignment: bool) -> List[str]:
    out: List[str] = []
    if turtle_neck:
        out.append("Straighten your neck and tuck your chin in")
        out.append("Raise your monitor to eye level")
    if shoulder_misalignment:
        out.append("Level your shoulders")
        out.append("Rest your back fully against the backrest")
    if not out:
        out.append("Great posture, keep it up!")
    return out
