"""Logging helpers for sim_arm_controller."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from arm_controller.utils.path_utils import resolve_relative_path

_ROOT_NAME = 'arm_controller'
_DEFAULT_LOG_DIR = 'log/arm_controller'
_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_LOGGERS: Dict[str, logging.Logger] = {}
_FILE_HANDLER: Optional[logging.Handler] = None


def get_logger(name: str = _ROOT_NAME, log_dir: Optional[str] = None) -> logging.Logger:
    """Return a cached logger writing to stdout and the shared log file.

    ``ARM_CONTROLLER_LOG_FILE`` forces the log file path and
    ``ARM_CONTROLLER_LOG_DIR`` the directory; setting the directory to an empty
    string keeps output on the console only.
    """
    cached = _LOGGERS.get(name)
    if cached:
        return cached

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(_FORMAT)

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        file_handler = _shared_file_handler(formatter, log_dir)
        if file_handler is not None:
            logger.addHandler(file_handler)

    logger.propagate = False
    _LOGGERS[name] = logger
    return logger


def _shared_file_handler(formatter: logging.Formatter, log_dir: Optional[str]) -> Optional[logging.Handler]:
    global _FILE_HANDLER
    if _FILE_HANDLER is not None:
        return _FILE_HANDLER

    log_path = _resolve_log_path(_ROOT_NAME, log_dir)
    if log_path is None:
        return None
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    except OSError as exc:
        logging.getLogger(_ROOT_NAME).warning('File logging disabled (%s): %s', log_path, exc)
        return None

    handler.setFormatter(formatter)
    _FILE_HANDLER = handler
    return handler


def _resolve_log_path(node_name: str, log_dir: Optional[str]) -> Optional[Path]:
    env_path = os.environ.get('ARM_CONTROLLER_LOG_FILE')
    if env_path:
        return Path(env_path).expanduser().resolve()

    env_dir = os.environ.get('ARM_CONTROLLER_LOG_DIR')
    if env_dir is not None:
        log_dir = env_dir
    elif log_dir is None:
        log_dir = _DEFAULT_LOG_DIR
    if not log_dir:
        return None

    target_dir = resolve_relative_path(log_dir, must_exist=False)
    timestamp = datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')
    return target_dir / f'{node_name}_{timestamp}.log'
