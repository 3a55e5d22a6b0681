# src/__init__.py — v1
"""learnhub — embedding cache, similarity search, recommendation and clustering."""

from learnhub.version import __version__

__all__ = ["__version__"]
