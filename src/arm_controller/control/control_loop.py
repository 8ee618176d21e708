"""Fixed-period scheduling of controller ticks."""
from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Optional

from arm_controller.errors import ErrorCode
from arm_controller.utils.logging_utils import get_logger


class SimulationStep:
    """Advance the simulated robot by one period, then tick every controller."""

    def __init__(self, robot, controllers: Iterable, period: float):
        self._robot = robot
        self._controllers = list(controllers)
        self._period = period

    @property
    def period(self) -> float:
        return self._period

    def __call__(self) -> None:
        self._robot.step(self._period)
        for controller in self._controllers:
            controller.tick()


class ControlLoop:
    def __init__(self, tick: Callable[[], object], period: float, *, name: str = 'control_loop'):
        if period <= 0.0:
            raise ValueError(f'period must be positive, got {period}')
        self._tick = tick
        self._period = period
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._ticks = 0
        self._logger = get_logger(__name__)

    @property
    def period(self) -> float:
        return self._period

    @property
    def tick_count(self) -> int:
        return self._ticks

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker, name=self._name, daemon=True)
        self._thread.start()
        self._logger.info('%s started (period=%.3fs)', self._name, self._period)

    def stop(self, timeout: float = 1.0) -> None:
        """Stop the worker thread and wait for it to exit."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)
            self._logger.info('%s stopped after %d ticks', self._name, self._ticks)

    def run_ticks(self, count: int) -> None:
        """Run ``count`` ticks synchronously on the calling thread, without pacing."""
        for _ in range(count):
            self._run_once()

    # ------------------------------------------------------------------ threads
    def _worker(self) -> None:
        next_deadline = time.monotonic()
        while not self._stop.is_set():
            self._run_once()
            next_deadline += self._period
            delay = next_deadline - time.monotonic()
            if delay < 0.0:
                # Overran; resynchronise instead of bursting to catch up.
                next_deadline = time.monotonic()
                delay = 0.0
            self._stop.wait(delay)

    def _run_once(self) -> None:
        try:
            self._tick()
        except Exception as exc:
            self._logger.error('[E%d] %s tick failed: %s', ErrorCode.INTERNAL_ERROR, self._name, exc)
        finally:
            self._ticks += 1
