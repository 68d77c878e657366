"""Majority vote over the last few per-frame verdicts."""
from __future__ import annotations

import threading
from collections import deque
from typing import Dict, List

from posture_nudge.vision.classifier import Condition


def _check_limits(window: int, threshold: int) -> None:
    if window < 1:
        raise ValueError(f"debounce window must be >= 1, got {window}")
    if not 1 <= threshold <= window:
        raise ValueError(f"debounce threshold must be in [1, {window}], got {threshold}")


class DetectionHistory:
    """Bounded FIFO of recent verdicts for one condition."""

    def __init__(self, window: int = 3) -> None:
        self._lock = threading.Lock()
        self._window: deque[bool] = deque(maxlen=window)

    @property
    def capacity(self) -> int:
        return int(self._window.maxlen or 0)

    def push(self, detected: bool) -> int:
        """Append the newest verdict and return the positive count in the window."""
        with self._lock:
            self._window.append(bool(detected))
            return sum(self._window)

    def resize(self, window: int) -> None:
        with self._lock:
            self._window = deque(self._window, maxlen=window)

    def clear(self) -> None:
        with self._lock:
            self._window.clear()

    def values(self) -> List[bool]:
        with self._lock:
            return list(self._window)


class TemporalDebouncer:
    """Reports a condition once ``threshold`` of the last ``window`` frames agree."""

    def __init__(self, window: int = 3, threshold: int = 2) -> None:
        _check_limits(window, threshold)
        self._config_lock = threading.Lock()
        self._window = window
        self._threshold = threshold
        self._histories: Dict[Condition, DetectionHistory] = {c: DetectionHistory(window) for c in Condition}

    @property
    def window(self) -> int:
        return self._window

    @property
    def threshold(self) -> int:
        return self._threshold

    def check_threshold(self, threshold: int) -> None:
        """Raise ``ValueError`` if ``threshold`` does not fit the current window."""
        _check_limits(self._window, int(threshold))

    def set_threshold(self, threshold: int) -> None:
        with self._config_lock:
            _check_limits(self._window, int(threshold))
            self._threshold = int(threshold)

    def set_window(self, window: int) -> None:
        """Resize every history, keeping the newest verdicts."""
        with self._config_lock:
            _check_limits(int(window), self._threshold)
            self._window = int(window)
            for history in self._histories.values():
                history.resize(self._window)

    def update(self, condition: "str | Condition", detected: bool) -> bool:
        count = self._histories[Condition(condition)].push(detected)
        return count >= self._threshold

    def history(self, condition: "str | Condition") -> List[bool]:
        return self._histories[Condition(condition)].values()

    def reset(self) -> None:
        for history in self._histories.values():
            history.clear()
