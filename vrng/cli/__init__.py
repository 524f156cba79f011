"""
vrng.cli
--------

Command line entrypoint (``vrng``). See :mod:`vrng.cli.main`.
"""

from .main import app

__all__ = ["app"]
