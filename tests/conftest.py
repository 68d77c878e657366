from __future__ import annotations

import pytest

from posture_nudge.vision.engine import PostureEngine
from posture_nudge.vision.session import ModelSession
from tests.helpers import FakeOnnxSession, build_output, points


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "yolo11n-pose.onnx"
    path.write_bytes(b"\x08" * 4096)
    return path


@pytest.fixture
def fake_session():
    return FakeOnnxSession(build_output([(0.9, points())]))


@pytest.fixture
def engine(model_file, fake_session):
    session = ModelSession(min_bytes=1024, session_factory=lambda path, threads: fake_session)
    eng = PostureEngine(session=session)
    eng.load_model(model_file)
    return eng
