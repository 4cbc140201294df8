"""Exception types shared by the core and the store adapters."""

from __future__ import annotations


class SpanscopeError(Exception):
    """Base exception for all spanscope errors."""


class StoreError(SpanscopeError):
    """Raised by a rule catalog or annotation store when a call fails."""


class RecordError(StoreError):
    """Raised when a stored or received record cannot be mapped to a model."""
