"""Keypoint types for the 17-point COCO body skeleton."""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, Iterator, Sequence, Tuple


COCO17_NAMES: Tuple[str, ...] = (
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)


@dataclass(frozen=True)
class KeyPoint:
    """A single 2D keypoint in original-image pixel coordinates."""

    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class PoseKeypoints:
    """One decoded body, field order matches ``COCO17_NAMES``."""

    nose: KeyPoint
    left_eye: KeyPoint
    right_eye: KeyPoint
    left_ear: KeyPoint
    right_ear: KeyPoint
    left_shoulder: KeyPoint
    right_shoulder: KeyPoint
    left_elbow: KeyPoint
    right_elbow: KeyPoint
    left_wrist: KeyPoint
    right_wrist: KeyPoint
    left_hip: KeyPoint
    right_hip: KeyPoint
    left_knee: KeyPoint
    right_knee: KeyPoint
    left_ankle: KeyPoint
    right_ankle: KeyPoint

    @classmethod
    def from_sequence(cls, points: Sequence[KeyPoint]) -> "PoseKeypoints":
        if len(points) != len(COCO17_NAMES):
            raise ValueError(f"expected {len(COCO17_NAMES)} keypoints, got {len(points)}")
        return cls(*points)

    def __iter__(self) -> Iterator[Tuple[str, KeyPoint]]:
        for f in fields(self):
            yield f.name, getattr(self, f.name)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {"x": kp.x, "y": kp.y, "confidence": kp.confidence}
            for name, kp in self
        }
