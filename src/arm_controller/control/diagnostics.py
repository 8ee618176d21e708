"""Operator-facing diagnostics for controllers."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from arm_controller import constants
from arm_controller.messages import DiagnosticArray, DiagnosticStatus
from arm_controller.utils.logging_utils import get_logger

_LOG_LEVELS = {
    DiagnosticStatus.OK: logging.INFO,
    DiagnosticStatus.WARN: logging.WARNING,
    DiagnosticStatus.ERROR: logging.ERROR,
    DiagnosticStatus.STALE: logging.WARNING,
}


class DiagnosticsReporter:
    """Keeps the latest status per key, logs every report and publishes a
    ``DiagnosticArray`` at most once per ``period`` when a transport is attached.
    """

    def __init__(
        self,
        hardware_id: str,
        *,
        topic: str = constants.DIAGNOSTICS_TOPIC,
        period: float = 1.0 / constants.DEFAULT_DIAGNOSTICS_RATE_HZ,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._hardware_id = hardware_id
        self._topic = topic
        self._period = period
        self._clock = clock
        self._lock = threading.Lock()
        self._statuses: Dict[str, DiagnosticStatus] = {}
        self._transport = None
        self._last_publish: Optional[float] = None
        self._array = DiagnosticArray()
        self._logger = get_logger(__name__)

    @property
    def attached(self) -> bool:
        return self._transport is not None

    @property
    def statuses(self) -> List[DiagnosticStatus]:
        with self._lock:
            return list(self._statuses.values())

    def status(self, key: str) -> Optional[DiagnosticStatus]:
        with self._lock:
            return self._statuses.get(key)

    def report(self, key: str, level: int, message: str, **values) -> DiagnosticStatus:
        status = DiagnosticStatus(
            level=level,
            name=f'{self._hardware_id}/{key}',
            message=message,
            hardware_id=self._hardware_id,
            values={name: str(value) for name, value in values.items()},
        )
        with self._lock:
            self._statuses[key] = status
        self._logger.log(_LOG_LEVELS.get(level, logging.INFO), '%s: %s', status.name, message)
        return status

    def clear(self, key: str) -> None:
        with self._lock:
            self._statuses.pop(key, None)

    # ------------------------------------------------------------------ transport
    def attach(self, transport) -> None:
        if self._transport is transport:
            return
        try:
            transport.advertise(self._topic, DiagnosticArray)
        except Exception as exc:
            self._logger.warning('Diagnostics topic %s unavailable: %s', self._topic, exc)
            return
        self._transport = transport
        self._last_publish = None

    def detach(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.unadvertise(self._topic)
        except Exception as exc:
            self._logger.warning('Failed to unadvertise %s: %s', self._topic, exc)

    def publish(self, *, force: bool = False) -> bool:
        """Publish the latched statuses; returns True when a message went out."""
        if self._transport is None:
            return False
        now = self._clock()
        if not force and self._last_publish is not None and now - self._last_publish < self._period:
            return False
        with self._lock:
            self._array.status = list(self._statuses.values())
        self._array.header.update()
        try:
            self._transport.publish(self._topic, self._array)
        except Exception as exc:
            self._logger.warning('Diagnostics publish failed: %s', exc)
            return False
        self._last_publish = now
        return True
