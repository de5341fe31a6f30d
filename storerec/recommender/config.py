"""Configuration for the recommendation engine.

All tunables live in a single settings object so the API, the CLI and the
tests can build engines with different settings. Every field can be
overridden through a ``STOREREC_<FIELD>`` environment variable.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "STOREREC_"


class RecommenderConfig(BaseSettings):
    """Tunables for strategy selection, ranking and diversity.

    Attributes:
        default_limit: Number of recommendations returned when the caller
            does not ask for a specific count.
        recent_cart_window_hours: How far back an add_to_cart event counts as
            recent cart activity.
        cart_diverse_slots: Slots reserved for other-category products in the
            cart strategy (for a limit of 6).
        cold_start_per_category: Products drawn per category for cold start.
        category_soft_cap: Selections per category before further items of
            that category are deferred.
        min_distinct_categories: Category spread the diversity pass aims for.
        max_replacements: Upper bound on evictions made to add categories.
        max_neighbors: Cutoff on similar users considered per request.
        popular_limit: Default size of the popular products list.
        time_budget_ms: Soft budget per request; overruns are logged.
        seed: Seed for the per-request random source; ``None`` for entropy.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    default_limit: int = Field(default=6, ge=1)
    recent_cart_window_hours: float = Field(default=24.0, gt=0)
    cart_diverse_slots: int = Field(default=2, ge=0)
    cold_start_per_category: int = Field(default=2, ge=1)
    category_soft_cap: int = Field(default=2, ge=1)
    min_distinct_categories: int = Field(default=3, ge=1)
    max_replacements: int = Field(default=2, ge=0)
    max_neighbors: int = Field(default=50, ge=0)
    popular_limit: int = Field(default=10, ge=1)
    time_budget_ms: float = Field(default=50.0, ge=0)
    seed: Optional[int] = None
