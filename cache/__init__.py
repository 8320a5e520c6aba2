"""Process-lifetime caching primitives."""

from .store import ResultCache  # noqa: F401

__all__ = ["ResultCache"]
