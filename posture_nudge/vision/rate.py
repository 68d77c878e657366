"""Adaptive analysis interval for power-save mode."""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from loguru import logger


GOOD_SCORE = 80
POOR_SCORE = 60


class AdaptiveRateController:
    """Gate frames by wall-clock spacing and adapt that spacing to posture quality.

    Good scores stretch the interval (fewer inferences while the user sits
    well), poor scores shrink it so a slouch is confirmed quickly, mid-range
    scores go back to the default. With power save off every frame is accepted
    and scores are ignored.
    """

    def __init__(
        self,
        default_interval_s: float = 3.0,
        min_interval_s: float = 1.0,
        max_interval_s: float = 10.0,
        *,
        relax_factor: float = 1.5,
        tighten_factor: float = 0.5,
        power_save: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not 0 < min_interval_s <= default_interval_s <= max_interval_s:
            raise ValueError("intervals must satisfy 0 < min <= default <= max")
        self.default_interval_s = float(default_interval_s)
        self.min_interval_s = float(min_interval_s)
        self.max_interval_s = float(max_interval_s)
        self.relax_factor = float(relax_factor)
        self.tighten_factor = float(tighten_factor)
        self._clock = clock
        self._interval_lock = threading.Lock()
        self._interval_s = self.default_interval_s
        self._power_save = bool(power_save)
        self._last_lock = threading.Lock()
        self._last_run: Optional[float] = None

    @property
    def interval_s(self) -> float:
        with self._interval_lock:
            return self._interval_s

    @property
    def power_save(self) -> bool:
        with self._interval_lock:
            return self._power_save

    def set_power_save(self, enabled: bool) -> None:
        with self._interval_lock:
            self._power_save = bool(enabled)
            self._interval_s = self.default_interval_s
        logger.info("Power save {}", "enabled" if enabled else "disabled")

    def should_run_now(self) -> bool:
        if not self.power_save:
            return True
        interval = self.interval_s
        with self._last_lock:
            if self._last_run is None:
                return True
            return (self._clock() - self._last_run) >= interval

    def try_begin(self) -> bool:
        """Check the gate and, if open, stamp the cycle start in one step."""
        if not self.power_save:
            with self._last_lock:
                self._last_run = self._clock()
            return True
        interval = self.interval_s
        with self._last_lock:
            now = self._clock()
            if self._last_run is not None and (now - self._last_run) < interval:
                return False
            self._last_run = now
            return True

    def record_result(self, score: int) -> float:
        """Adjust the interval from the latest posture score and return it."""
        with self._interval_lock:
            if not self._power_save:
                return self._interval_s
            if score >= GOOD_SCORE:
                self._interval_s = min(self.max_interval_s, self._interval_s * self.relax_factor)
            elif score < POOR_SCORE:
                self._interval_s = max(self.min_interval_s, self._interval_s * self.tighten_factor)
            else:
                self._interval_s = self.default_interval_s
            return self._interval_s
