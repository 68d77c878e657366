"""Decode the raw YOLO-pose output tensor into a single body's keypoints.

Layout contract for ``output0`` (feature-major, detection-minor)::

    shape  = [1, 56, D]
    feature 0..3   bbox cx, cy, w, h
    feature 4      objectness
    feature 5+3k   keypoint k x        (k = 0..16, COCO-17 order)
    feature 6+3k   keypoint k y
    feature 7+3k   keypoint k confidence

Flattened, value ``(feature f, detection i)`` lives at ``f * D + i``. Every
offset computation is kept in this module.
"""
from __future__ import annotations

import numpy as np

from posture_nudge.core.errors import NoDetectionError, ShapeMismatchError
from posture_nudge.vision.keypoints import COCO17_NAMES, KeyPoint, PoseKeypoints


BBOX_FEATURES = 4
OBJECTNESS_FEATURE = 4
KEYPOINT_BASE_FEATURE = 5
VALUES_PER_KEYPOINT = 3
NUM_FEATURES = KEYPOINT_BASE_FEATURE + VALUES_PER_KEYPOINT * len(COCO17_NAMES)  # 56


def check_output_shape(output: np.ndarray) -> int:
    """Validate the tensor layout and return the number of detection slots."""
    shape = tuple(output.shape)
    if len(shape) != 3:
        raise ShapeMismatchError(f"expected rank-3 output [1, {NUM_FEATURES}, D], got shape {shape}")
    if shape[0] != 1:
        raise ShapeMismatchError(f"expected batch size 1, got shape {shape}")
    if shape[1] != NUM_FEATURES:
        raise ShapeMismatchError(f"expected {NUM_FEATURES} features per detection, got shape {shape}")
    return int(shape[2])


def select_detection(flat: np.ndarray, detections: int, confidence_floor: float) -> int:
    """Index of the slot with the highest objectness above the floor (first one wins ties)."""
    best_idx = -1
    best_conf = float(confidence_floor)
    base = OBJECTNESS_FEATURE * detections
    for i in range(detections):
        conf = float(flat[base + i])
        if conf > best_conf:
            best_conf = conf
            best_idx = i
    if best_idx < 0:
        raise NoDetectionError(f"no detection above objectness {confidence_floor}")
    return best_idx


def keypoint_at(
    flat: np.ndarray,
    detections: int,
    detection_idx: int,
    keypoint_idx: int,
    scale_x: float,
    scale_y: float,
) -> KeyPoint:
    feature = KEYPOINT_BASE_FEATURE + keypoint_idx * VALUES_PER_KEYPOINT
    x = float(flat[feature * detections + detection_idx])
    y = float(flat[(feature + 1) * detections + detection_idx])
    conf = float(flat[(feature + 2) * detections + detection_idx])
    return KeyPoint(x=x * scale_x, y=y * scale_y, confidence=conf)


def decode_keypoints(
    output: np.ndarray,
    orig_width: int,
    orig_height: int,
    *,
    input_size: int = 640,
    confidence_floor: float = 0.5,
) -> PoseKeypoints:
    """Pick the most confident body and rescale its keypoints to the original image.

    Raises:
        ShapeMismatchError: the tensor is not ``[1, 56, D]``.
        NoDetectionError: no slot has objectness above ``confidence_floor``.
    """
    output = np.asarray(output, dtype=np.float32)
    detections = check_output_shape(output)
    flat = output.reshape(-1)
    idx = select_detection(flat, detections, confidence_floor)
    scale_x = float(orig_width) / float(input_size)
    scale_y = float(orig_height) / float(input_size)
    points = [
        keypoint_at(flat, detections, idx, k, scale_x, scale_y)
        for k in range(len(COCO17_NAMES))
    ]
    return PoseKeypoints.from_sequence(points)
