"""Per-robot controller registry."""
from __future__ import annotations

import json
import threading
from typing import Dict, Iterable, List, Optional

from arm_controller.errors import ConfigurationError, ErrorCode
from arm_controller.messages import ControllerStateInfo, to_dict
from arm_controller.utils.logging_utils import get_logger


class ControllerManager:
    """Registry of controllers hosted by one simulated robot.

    Controllers register themselves on ``start()``. ``load``/``unload`` and
    ``switch_controllers`` drive their lifecycle by name, the way the
    controller_manager services do.
    """

    def __init__(self, name: str):
        if not name:
            raise ValueError('controller manager name is required')
        self._name = name
        self._controllers: Dict[str, object] = {}
        self._lock = threading.RLock()
        self._logger = get_logger(__name__)

    @property
    def name(self) -> str:
        return self._name

    @property
    def controller_names(self) -> List[str]:
        with self._lock:
            return list(self._controllers)

    def register_controller(self, controller) -> None:
        name = controller.controller_name
        with self._lock:
            existing = self._controllers.get(name)
            if existing is controller:
                return
            if existing is not None:
                raise ConfigurationError(ErrorCode.DUPLICATE_CONTROLLER, f'{name} on {self._name}')
            self._controllers[name] = controller
        self._logger.info('Registered controller %s on %s', name, self._name)

    def unregister_controller(self, name: str) -> bool:
        with self._lock:
            removed = self._controllers.pop(name, None)
        if removed is None:
            return False
        self._logger.info('Unregistered controller %s from %s', name, self._name)
        return True

    def get_controller(self, name: str):
        with self._lock:
            controller = self._controllers.get(name)
        if controller is None:
            raise ConfigurationError(ErrorCode.CONTROLLER_NOT_REGISTERED, f'{name} on {self._name}')
        return controller

    def list_controllers(self) -> List[ControllerStateInfo]:
        with self._lock:
            controllers = list(self._controllers.values())
        return [controller.controller_state_info for controller in controllers]

    def list_controllers_json(self) -> str:
        return json.dumps({
            'manager': self._name,
            'controllers': [to_dict(info) for info in self.list_controllers()],
        })

    def load_controller(self, name: str) -> bool:
        return self._call(name, 'load')

    def unload_controller(self, name: str) -> bool:
        return self._call(name, 'unload')

    def switch_controllers(self, start: Iterable[str] = (), stop: Iterable[str] = ()) -> bool:
        """Stop then start the named controllers; True when every call succeeded."""
        ok = True
        for name in stop:
            ok = self.unload_controller(name) and ok
        for name in start:
            ok = self.load_controller(name) and ok
        return ok

    def _call(self, name: str, method: str) -> bool:
        try:
            controller = self.get_controller(name)
            getattr(controller, method)()
        except ConfigurationError as exc:
            self._logger.error('%s %s failed: %s', method, name, exc)
            return False
        return True


def single_manager(managers: Iterable[ControllerManager]) -> Optional[ControllerManager]:
    """Return the only manager in ``managers`` or None when there is not exactly one."""
    managers = list(managers)
    if len(managers) != 1:
        return None
    return managers[0]
