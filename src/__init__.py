# src/__init__.py
"""loadspec: natural-language load-test command interpretation."""

from loadspec.version import __version__

__all__ = ["__version__"]
