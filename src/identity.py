"""Reviewer identity resolution.

The annotator recorded on every annotation is resolved once at startup and
injected into the session, so the core never reads ambient user state.
"""

from __future__ import annotations

import getpass
import os
from typing import Optional

from dotenv import load_dotenv

from core.config import ReviewConfig


def resolve_annotator(configured: Optional[str] = None) -> str:
    """Return the reviewer id: environment, then config.json, then OS user."""

    load_dotenv()
    annotator = (os.getenv("SPANSCOPE_ANNOTATOR") or "").strip()
    if annotator:
        return annotator
    if configured and configured.strip():
        return configured.strip()
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "anonymous"


def build_review_config(configured: Optional[str] = None) -> ReviewConfig:
    return ReviewConfig(annotator=resolve_annotator(configured))
