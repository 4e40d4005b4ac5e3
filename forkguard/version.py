"""
Version and build information.

_build_info.py is generated by setup.py at build time; source checkouts
and editable installs without git metadata have none.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass

__version__ = "0.1.0"


@dataclass(frozen=True)
class BuildInfo:
    """Commit the package was built from."""

    commit: str
    commit_short: str
    message: str
    build_time: str
    modified: bool = False

    def describe(self) -> str:
        suffix = "-modified" if self.modified else ""
        return f"{self.commit_short}{suffix} ({self.build_time})"


def get_build_info() -> BuildInfo | None:
    """Return build information, or None if the package was not built from git."""
    try:
        mod = importlib.import_module("forkguard._build_info")
    except ModuleNotFoundError:
        return None

    return BuildInfo(
        commit=getattr(mod, "COMMIT_HASH", ""),
        commit_short=getattr(mod, "COMMIT_SHORT", ""),
        message=getattr(mod, "COMMIT_MESSAGE", ""),
        build_time=getattr(mod, "BUILD_TIME", ""),
        modified=bool(getattr(mod, "MODIFIED", False)),
    )


def version_string() -> str:
    """Version, followed by the build commit when known."""
    info = get_build_info()
    if info is None:
        return f"forkguard {__version__}"
    return f"forkguard {__version__} {info.describe()}"
