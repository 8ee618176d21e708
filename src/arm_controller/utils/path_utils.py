"""Shared path helpers for the sim_arm_controller package."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

try:
    from ament_index_python.packages import (  # type: ignore
        get_package_share_directory,
        PackageNotFoundError,
    )
except ImportError:  # pragma: no cover
    get_package_share_directory = None  # type: ignore
    PackageNotFoundError = RuntimeError  # type: ignore

PACKAGE_NAME = 'sim_arm_controller'


def _candidate_roots(extra: Optional[Iterable[Path]] = None) -> list[Path]:
    roots: list[Path] = []
    if extra:
        roots.extend(Path(p) for p in extra)

    if get_package_share_directory:
        try:
            share = Path(get_package_share_directory(PACKAGE_NAME))
            roots.append(share)
        except PackageNotFoundError:
            pass

    roots.append(Path(__file__).resolve().parents[3])  # repository root (src/arm_controller/utils)
    roots.append(Path.cwd())
    return roots


def resolve_relative_path(
    path_str: str,
    *,
    must_exist: bool = False,
    search_roots: Optional[Iterable[Path]] = None,
) -> Path:
    """Resolve ``path_str`` to an absolute :class:`Path`.

    - Absolute paths are returned as-is (optionally validated).
    - Relative paths are resolved against candidate roots in order: explicit
      ``search_roots``, the installed share directory, the repository root and
      finally the working directory.
    - If ``must_exist`` is True the first existing candidate wins and
      :class:`FileNotFoundError` is raised when none exists.
    """

    candidate = Path(path_str)
    if candidate.is_absolute():
        if must_exist and not candidate.exists():
            raise FileNotFoundError(candidate)
        return candidate

    roots = _candidate_roots(search_roots)
    for root in roots:
        candidate = (root / path_str).resolve()
        if candidate.exists():
            return candidate

    if must_exist or not roots:
        raise FileNotFoundError(path_str)
    return (roots[0] / path_str).resolve()
