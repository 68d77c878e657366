"""Synthetic keypoints, YOLO-pose output tensors and a fake inference session."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from posture_nudge.vision.keypoints import COCO17_NAMES, KeyPoint, PoseKeypoints

Point = Tuple[float, float, float]

# Upright sitter facing the camera in a 640x640 frame.
NEUTRAL: Dict[str, Point] = {
    "nose": (320.0, 250.0, 0.9),
    "left_eye": (305.0, 240.0, 0.9),
    "right_eye": (335.0, 240.0, 0.9),
    "left_ear": (290.0, 245.0, 0.9),
    "right_ear": (350.0, 245.0, 0.9),
    "left_shoulder": (220.0, 400.0, 0.9),
    "right_shoulder": (420.0, 400.0, 0.9),
    "left_elbow": (200.0, 520.0, 0.8),
    "right_elbow": (440.0, 520.0, 0.8),
    "left_wrist": (230.0, 600.0, 0.7),
    "right_wrist": (410.0, 600.0, 0.7),
    "left_hip": (260.0, 620.0, 0.4),
    "right_hip": (380.0, 620.0, 0.4),
    "left_knee": (250.0, 639.0, 0.1),
    "right_knee": (390.0, 639.0, 0.1),
    "left_ankle": (250.0, 639.0, 0.05),
    "right_ankle": (390.0, 639.0, 0.05),
}


def points(**overrides: Point) -> Dict[str, Point]:
    out = dict(NEUTRAL)
    out.update(overrides)
    return out


def head_forward(offset_ratio: float = 0.12) -> Dict[str, Point]:
    """Ears shifted so (ear center - shoulder center) / shoulder width == offset_ratio."""
    dx = offset_ratio * 200.0
    return points(left_ear=(290.0 + dx, 245.0, 0.9), right_ear=(350.0 + dx, 245.0, 0.9))


def tilted_shoulders() -> Dict[str, Point]:
    # raw = 30 / 200 = 0.15, corrected = 30 / |415 - 250| ~= 0.18
    return points(right_shoulder=(420.0, 430.0, 0.9))


def to_keypoints(pts: Dict[str, Point]) -> PoseKeypoints:
    return PoseKeypoints.from_sequence([KeyPoint(*pts[name]) for name in COCO17_NAMES])


def build_output(bodies: Iterable[Tuple[float, Dict[str, Point]]], slots: Optional[int] = None) -> np.ndarray:
    """Build a ``[1, 56, D]`` tensor; body ``i`` goes into detection slot ``i``."""
    bodies = list(bodies)
    d = slots if slots is not None else max(1, len(bodies))
    out = np.zeros((1, 56, d), dtype=np.float32)
    for i, (objectness, pts) in enumerate(bodies):
        out[0, 0:4, i] = (320.0, 400.0, 300.0, 480.0)
        out[0, 4, i] = objectness
        for k, name in enumerate(COCO17_NAMES):
            x, y, c = pts[name]
            out[0, 5 + 3 * k, i] = x
            out[0, 6 + 3 * k, i] = y
            out[0, 7 + 3 * k, i] = c
    return out


class FakeOnnxSession:
    """Stands in for ``onnxruntime.InferenceSession``; returns queued outputs."""

    def __init__(self, *outputs: np.ndarray) -> None:
        self.outputs: List[np.ndarray] = list(outputs)
        self.calls: List[dict] = []
        self.error: Optional[Exception] = None

    def set_output(self, output: np.ndarray) -> None:
        self.outputs = [output]

    def run(self, output_names, feeds):
        self.calls.append({"names": list(output_names), "feeds": feeds})
        if self.error is not None:
            raise self.error
        # The last queued output repeats once the queue drains.
        out = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        return [out]


def blank_frame(width: int = 640, height: int = 640) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)
