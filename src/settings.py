"""Static configuration for spanscope.

All user-editable settings (store backend, reviewer, logging) live in a
single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The config file can be moved with SPANSCOPE_CONFIG, e.g. for a shared checkout.
CONFIG_PATH = os.getenv("SPANSCOPE_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Store backend used for both the rule catalog and annotations.
# - STORE_BACKEND: "sqlite" (local file) or "http" (REST API)
# - DB_PATH: SQLite file, relative paths resolve against the project root
# - API_BASE_URL / API_TIMEOUT_SECONDS: only used by the http backend
_store = _CONFIG.get("store", {})
STORE_BACKEND = _store.get("backend", "sqlite")
DB_PATH = _resolve_path(_store.get("db_path", "spanscope.db"))
API_BASE_URL = _store.get("base_url")
API_TIMEOUT_SECONDS = float(_store.get("timeout_seconds", 10))

# Reviewer identity fallback; SPANSCOPE_ANNOTATOR in the environment wins.
_review = _CONFIG.get("review", {})
ANNOTATOR = _review.get("annotator")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
