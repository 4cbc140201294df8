"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StoreConfig:
    """Store backend selection consumed by the adapter factory."""

    backend: str
    db_path: str
    base_url: Optional[str]
    timeout_seconds: float
    api_token: Optional[str] = None


@dataclass(frozen=True)
class ReviewConfig:
    """Review session settings."""

    annotator: str
