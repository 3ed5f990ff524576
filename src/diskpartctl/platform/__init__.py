"""
diskpartctl platform helpers.

Privilege detection and tool lookup. The executor only consumes the boolean
returned by :func:`is_admin`.
"""

from __future__ import annotations

import os
import platform
import shutil
from collections.abc import Callable

ElevationProbe = Callable[[], bool]


def get_platform_name() -> str:
    """Get the current platform name."""
    return platform.system().lower()


def is_windows() -> bool:
    """Check if running on Windows."""
    return get_platform_name() == "windows"


def is_admin() -> bool:
    """Check if running with administrative privileges."""
    system = get_platform_name()

    if system == "windows":
        import ctypes

        try:
            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError):
            return False
    if hasattr(os, "geteuid"):
        return os.geteuid() == 0
    return False


def privilege_status(probe: ElevationProbe = is_admin) -> str:
    """Human-readable privilege status line."""
    if probe():
        return "Running with administrator privileges"
    return "Not running with administrator privileges. Some operations may fail."


def find_executable(name: str) -> str | None:
    """Resolve ``name`` on the search path."""
    return shutil.which(name)


__all__ = [
    "ElevationProbe",
    "find_executable",
    "get_platform_name",
    "is_admin",
    "is_windows",
    "privilege_status",
]
