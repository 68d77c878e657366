from __future__ import annotations

import pytest

from posture_nudge.vision.classifier import (
    SHOULDER_LEVELS,
    TURTLE_NECK_LEVELS,
    CalibrationBaseline,
    Condition,
    SensitivityConfig,
    SensitivityLevel,
    average_confidence,
    detect_shoulder_misalignment,
    detect_turtle_neck,
    face_shoulder_ratio,
    head_forward_ratio,
    posture_score,
    recommendations,
    shoulder_alignment_ratio,
)
from tests.helpers import head_forward, points, tilted_shoulders, to_keypoints

NORMAL_NECK = TURTLE_NECK_LEVELS[SensitivityLevel.NORMAL]
NORMAL_SHOULDER = SHOULDER_LEVELS[SensitivityLevel.NORMAL]
UNCALIBRATED = CalibrationBaseline()


def test_ratios_on_neutral_pose():
    kp = to_keypoints(points())
    assert face_shoulder_ratio(kp) == pytest.approx(30.0 / 200.0)
    assert shoulder_alignment_ratio(kp) == pytest.approx(0.0)
    assert head_forward_ratio(kp) == pytest.approx(0.0)


def test_head_forward_ratio_is_signed():
    assert head_forward_ratio(to_keypoints(head_forward(0.12))) == pytest.approx(0.12)
    assert head_forward_ratio(to_keypoints(head_forward(-0.1))) == pytest.approx(-0.1)


def test_ratios_need_confident_landmarks():
    kp = to_keypoints(points(left_ear=(290.0, 245.0, 0.49), left_eye=(305.0, 240.0, 0.2), nose=(320.0, 250.0, 0.0)))
    assert head_forward_ratio(kp) is None
    assert face_shoulder_ratio(kp) is None
    assert shoulder_alignment_ratio(kp) is None


def test_ratios_need_shoulder_span():
    kp = to_keypoints(points(left_shoulder=(320.0, 400.0, 0.9), right_shoulder=(320.5, 400.0, 0.9)))
    assert head_forward_ratio(kp) is None
    assert face_shoulder_ratio(kp) is None


def test_uncalibrated_forward_head_triggers_above_floor():
    assert detect_turtle_neck(to_keypoints(head_forward(0.12)), UNCALIBRATED, NORMAL_NECK) is True
    assert detect_turtle_neck(to_keypoints(head_forward(0.05)), UNCALIBRATED, NORMAL_NECK) is False


def test_uncalibrated_proximity_never_triggers():
    # Eyes twice as far apart as neutral: face much closer to the camera.
    close = points(left_eye=(290.0, 240.0, 0.9), right_eye=(350.0, 240.0, 0.9))
    assert detect_turtle_neck(to_keypoints(close), UNCALIBRATED, NORMAL_NECK) is False


def test_calibrated_proximity_triggers_alone():
    baseline = CalibrationBaseline(face_shoulder_ratio=0.15, head_forward_ratio=0.0)
    close = points(left_eye=(300.0, 240.0, 0.9), right_eye=(340.0, 240.0, 0.9))  # 0.20
    assert detect_turtle_neck(to_keypoints(close), baseline, NORMAL_NECK) is True
    slight = points(left_eye=(304.0, 240.0, 0.9), right_eye=(336.0, 240.0, 0.9))  # 0.16
    assert detect_turtle_neck(to_keypoints(slight), baseline, NORMAL_NECK) is False


def test_calibrated_forward_uses_baseline_plus_tolerance():
    baseline = CalibrationBaseline(head_forward_ratio=0.10)
    assert detect_turtle_neck(to_keypoints(head_forward(0.11)), baseline, NORMAL_NECK) is False
    assert detect_turtle_neck(to_keypoints(head_forward(0.13)), baseline, NORMAL_NECK) is True


def test_low_confidence_ears_mean_no_turtle_neck():
    pts = head_forward(0.3)
    pts["right_ear"] = (pts["right_ear"][0], pts["right_ear"][1], 0.3)
    assert detect_turtle_neck(to_keypoints(pts), UNCALIBRATED, NORMAL_NECK) is False


def test_uncalibrated_shoulder_needs_both_absolute_thresholds():
    assert detect_shoulder_misalignment(to_keypoints(tilted_shoulders()), None, NORMAL_SHOULDER) is True
    assert detect_shoulder_misalignment(to_keypoints(points()), None, NORMAL_SHOULDER) is False
    # raw 0.15 > 0.10 but a tall neck keeps corrected at 30/315 < 0.15
    tall = points(nose=(320.0, 100.0, 0.9), right_shoulder=(420.0, 430.0, 0.9))
    assert detect_shoulder_misalignment(to_keypoints(tall), None, NORMAL_SHOULDER) is False


def test_calibrated_shoulder_is_a_conjunction():
    mild = to_keypoints(points(nose=(320.0, 215.0, 0.9), right_shoulder=(420.0, 430.0, 0.9)))  # 30/200 = 0.15
    # relative check passes, absolute floor (0.18) does not
    assert detect_shoulder_misalignment(mild, -1.0, NORMAL_SHOULDER) is False
    # absolute passes (30/165 ~= 0.182), relative does not
    assert detect_shoulder_misalignment(to_keypoints(tilted_shoulders()), 0.0, NORMAL_SHOULDER) is False
    steep = to_keypoints(points(nose=(320.0, 400.0, 0.9), right_shoulder=(420.0, 520.0, 0.9)))  # 120/60 = 2.0
    assert detect_shoulder_misalignment(steep, 0.0, NORMAL_SHOULDER) is True


def test_shoulder_guards():
    low_nose = to_keypoints(points(nose=(320.0, 250.0, 0.4), right_shoulder=(420.0, 430.0, 0.9)))
    assert detect_shoulder_misalignment(low_nose, None, NORMAL_SHOULDER) is False
    stacked = to_keypoints(points(left_shoulder=(320.0, 400.0, 0.9), right_shoulder=(320.5, 450.0, 0.9)))
    assert detect_shoulder_misalignment(stacked, None, NORMAL_SHOULDER) is False
    nose_on_line = to_keypoints(points(nose=(320.0, 415.0, 0.9), right_shoulder=(420.0, 430.0, 0.9)))
    assert detect_shoulder_misalignment(nose_on_line, None, NORMAL_SHOULDER) is False


def test_strict_sensitivity_flags_smaller_offsets():
    kp = to_keypoints(head_forward(0.07))
    assert detect_turtle_neck(kp, UNCALIBRATED, TURTLE_NECK_LEVELS[SensitivityLevel.NORMAL]) is False
    assert detect_turtle_neck(kp, UNCALIBRATED, TURTLE_NECK_LEVELS[SensitivityLevel.STRICT]) is True
    assert detect_turtle_neck(to_keypoints(head_forward(0.1)), UNCALIBRATED, TURTLE_NECK_LEVELS[SensitivityLevel.LOOSE]) is False


@pytest.mark.parametrize(
    "turtle,shoulder,expected",
    [(False, False, 100), (True, False, 70), (False, True, 80), (True, True, 50)],
)
def test_posture_score(turtle, shoulder, expected):
    assert posture_score(turtle, shoulder) == expected
    assert 0 <= posture_score(turtle, shoulder) <= 100


def test_average_confidence_ignores_zero_landmarks():
    kp = to_keypoints(points(left_ear=(0.0, 0.0, 0.0), right_ear=(0.0, 0.0, 0.0), nose=(320.0, 250.0, 0.6)))
    assert average_confidence(kp) == pytest.approx((0.6 + 0.9 + 0.9) / 3)
    empty = {name: (0.0, 0.0, 0.0) for name in points()}
    assert average_confidence(to_keypoints(empty)) == 0.0


def test_average_confidence_caps_out_of_range_scores():
    hot = {name: (x, y, 1.3) for name, (x, y, _) in points().items()}
    assert average_confidence(to_keypoints(hot)) == pytest.approx(1.0)


def test_recommendations():
    assert len(recommendations(True, True)) == 4
    assert recommendations(False, False) == ["Great posture, keep it up!"]
    assert "Level your shoulders" in recommendations(False, True)


def test_sensitivity_levels_parse_names_and_numbers():
    assert SensitivityLevel.parse(1) is SensitivityLevel.LOOSE
    assert SensitivityLevel.parse("3") is SensitivityLevel.STRICT
    assert SensitivityLevel.parse(" Normal ") is SensitivityLevel.NORMAL
    for bad in (0, 4, "extreme", True):
        with pytest.raises(ValueError):
            SensitivityLevel.parse(bad)


def test_sensitivity_config_per_condition():
    cfg = SensitivityConfig()
    cfg.set_level("shoulder_misalignment", "strict")
    assert cfg.level(Condition.SHOULDER_MISALIGNMENT) is SensitivityLevel.STRICT
    assert cfg.turtle_neck() == NORMAL_NECK
    assert cfg.shoulder() == SHOULDER_LEVELS[SensitivityLevel.STRICT]
    with pytest.raises(ValueError):
        cfg.set_level("elbows", "loose")
