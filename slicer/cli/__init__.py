"""Command-line interface package for the slicer engine.

The function :func:`main` is exposed via ``from slicer.cli import main``.
The implementation lives in :mod:`slicer.cli.main`; it is imported
eagerly so the package attribute is always the function rather than the
submodule (which remains importable as ``slicer.cli.main``).
"""

from .main import main

__all__ = ["main"]
