"""Model session holder: load once, run many, one inference in flight."""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np
from loguru import logger

try:  # Optional when running in CI (tests inject a fake session factory)
    import onnxruntime as ort  # type: ignore
except Exception:  # pragma: no cover
    ort = None  # type: ignore

from posture_nudge.core.errors import InferenceError, ModelLoadError, ModelNotLoadedError


SessionFactory = Callable[[Path, int], Any]


def onnx_session_factory(path: Path, intra_threads: int) -> Any:  # pragma: no cover - needs a real model
    if ort is None:
        raise ModelLoadError("onnxruntime is not installed")
    options = ort.SessionOptions()
    options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    options.intra_op_num_threads = max(1, int(intra_threads))
    return ort.InferenceSession(str(path), sess_options=options, providers=["CPUExecutionProvider"])


class ModelSession:
    """Owns the inference session.

    ``run`` holds the session lock for the whole backend call, so concurrent
    callers queue behind the in-flight inference instead of sharing the
    native session handle.
    """

    def __init__(
        self,
        *,
        min_bytes: int = 1_000_000,
        input_name: str = "images",
        output_name: str = "output0",
        intra_threads: int = 4,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.min_bytes = int(min_bytes)
        self.input_name = input_name
        self.output_name = output_name
        self.intra_threads = int(intra_threads)
        self._factory: SessionFactory = session_factory or onnx_session_factory
        self._lock = threading.Lock()
        self._session: Any = None
        self._path: Optional[Path] = None

    @property
    def model_path(self) -> Optional[Path]:
        return self._path

    def load(self, path: str | Path) -> None:
        """Validate and load a model artifact, replacing any loaded session.

        Raises:
            ModelLoadError: the file is missing, unreadable, implausibly small,
                or the backend rejects it.
        """
        model_path = Path(path)
        if not model_path.is_file():
            raise ModelLoadError(f"model file not found: {model_path}")
        try:
            size = model_path.stat().st_size
        except OSError as exc:
            raise ModelLoadError(f"model file is not readable: {model_path}") from exc
        if size < self.min_bytes:
            raise ModelLoadError(f"model file is corrupt or too small: {size} bytes")
        try:
            session = self._factory(model_path, self.intra_threads)
        except ModelLoadError:
            raise
        except Exception as exc:
            raise ModelLoadError(f"backend failed to load {model_path}: {exc}") from exc
        with self._lock:
            self._session = session
            self._path = model_path
        logger.info("Pose model loaded: {} ({} bytes)", model_path, size)

    def is_ready(self) -> bool:
        with self._lock:
            return self._session is not None

    def run(self, input_tensor: np.ndarray) -> np.ndarray:
        """Run one inference and return the raw ``output0`` tensor."""
        with self._lock:
            if self._session is None:
                raise ModelNotLoadedError("pose model is not loaded")
            try:
                outputs = self._session.run([self.output_name], {self.input_name: input_tensor})
            except Exception as exc:
                raise InferenceError(f"inference failed: {exc}") from exc
        if not outputs:
            raise InferenceError(f"model produced no '{self.output_name}' output")
        return np.asarray(outputs[0], dtype=np.float32)

    def unload(self) -> None:
        with self._lock:
            self._session = None
            self._path = None
