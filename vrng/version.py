"""
vrng.version
------------

Package semantic version plus an optional Git describe suffix.

- __version__: semantic version string (e.g., "0.1.0+gabcdef1").
- version(): callable returning the same value (cached).

Build systems may inject the suffix through VRNG_GIT_DESCRIBE. Outside a git
checkout, or if git is unavailable, the plain semantic version is used.
"""

from __future__ import annotations

import functools
import os
import subprocess
from pathlib import Path
from typing import Optional

_SEMVER_BASE = "0.1.0"


def _find_repo_root(start: Path) -> Optional[Path]:
    for parent in [start, *start.parents]:
        if (parent / ".git").exists():
            return parent
    return None


@functools.lru_cache(maxsize=1)
def _git_describe() -> Optional[str]:
    injected = os.getenv("VRNG_GIT_DESCRIBE")
    if injected:
        return injected.strip()

    repo_root = _find_repo_root(Path(__file__).resolve().parent)
    if repo_root is None:
        return None
    try:
        proc = subprocess.run(
            ["git", "describe", "--tags", "--always", "--dirty"],
            cwd=str(repo_root),
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            timeout=0.8,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    out = proc.stdout.strip() if proc.returncode == 0 else ""
    return out or None


@functools.lru_cache(maxsize=1)
def version() -> str:
    """Semantic version, suffixed with +<git-describe> when known."""
    desc = _git_describe()
    return f"{_SEMVER_BASE}+{desc}" if desc else _SEMVER_BASE


__version__ = version()

__all__ = ["__version__", "version"]
