"""FastAPI dependencies for the store, config and engine.

The in-memory store is created once per process and seeded from
``STOREREC_DATA_DIR`` when that directory holds a products snapshot. Tests
replace these dependencies through ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from fastapi import Depends

from storerec.api.settings import get_settings
from storerec.recommender.config import RecommenderConfig
from storerec.recommender.engine import RecommendationEngine
from storerec.recommender.storage import InMemoryStore, load_store_from_dir
from storerec.recommender.utils import check_data_exists

# Configure module logger
logger = logging.getLogger(__name__)

# Process-wide store and config, created on first use
_store_cache: Optional[InMemoryStore] = None
_config_cache: Optional[RecommenderConfig] = None


def get_store() -> InMemoryStore:
    """Return the process store, seeding it from disk on first use."""
    global _store_cache

    if _store_cache is not None:
        return _store_cache

    data_dir = get_settings().data_dir
    if check_data_exists(data_dir):
        logger.info(f"Seeding store from {data_dir}")
        _store_cache = load_store_from_dir(data_dir)
    else:
        logger.warning(f"No catalog snapshot in {data_dir}, starting with an empty store")
        _store_cache = InMemoryStore()
    return _store_cache


def get_config() -> RecommenderConfig:
    """Return the engine config read from ``STOREREC_*`` variables."""
    global _config_cache

    if _config_cache is None:
        _config_cache = RecommenderConfig()
    return _config_cache


def get_engine(
    store: InMemoryStore = Depends(get_store),
    config: RecommenderConfig = Depends(get_config),
) -> RecommendationEngine:
    """Build an engine over the current store; engines hold no request state."""
    return RecommendationEngine(behavior_log=store, catalog=store, config=config)


def reset_state() -> None:
    """Drop the cached store, config and settings (useful for testing)."""
    global _store_cache, _config_cache

    _store_cache = None
    _config_cache = None
    get_settings.cache_clear()
