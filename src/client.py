"""Store client factory for spanscope.

The same object serves as rule catalog and annotation store for either
backend, so the session gets two references to one adapter.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from adapters.http_store import HttpStore
from adapters.sqlite_store import SQLiteStore
from core.config import StoreConfig


def build_store_config(
    backend: str,
    db_path: str,
    base_url: Optional[str],
    timeout_seconds: float,
) -> StoreConfig:
    """Combine config.json values with the API token from the environment.

    We read SPANSCOPE_API_TOKEN via python-dotenv to keep secrets out of the repo.
    """

    load_dotenv()
    return StoreConfig(
        backend=backend,
        db_path=db_path,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
        api_token=os.getenv("SPANSCOPE_API_TOKEN") or None,
    )


def build_store(config: StoreConfig):
    """Create the store adapter selected by ``config.backend``."""

    logger = logging.getLogger(__name__)
    if config.backend == "sqlite":
        store = SQLiteStore(config.db_path)
        store.init_db()
        logger.info("Using SQLite store at %s", config.db_path)
        return store
    if config.backend == "http":
        # Fail fast on a missing URL to avoid an ambiguous connection error later.
        if not config.base_url:
            raise RuntimeError("store.base_url is required when store.backend=http")
        logger.info("Using HTTP store at %s", config.base_url)
        return HttpStore(
            config.base_url,
            api_token=config.api_token,
            timeout_seconds=config.timeout_seconds,
        )
    raise RuntimeError("store.backend must be 'sqlite' or 'http'")
