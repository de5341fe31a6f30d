"""Recommendation orchestration.

Chooses a strategy per request from the user's recent behavior and delegates
to the similarity, ranking and diversity modules:

1. cart: the user added something to the cart recently, so recommend more of
   those categories plus a couple of products from other categories;
2. cold start: the user has no behavior at all, so return a category mix;
3. collaborative: rank what similar users interacted with, then diversify
   (falling back to content-based ranking when no neighbor signal exists).

Every branch pads with random eligible products when short. Each request is
computed independently from fresh store snapshots.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Set

import numpy as np

from storerec.api.exceptions import DataUnavailable, StoreRecException
from storerec.recommender.config import RecommenderConfig
from storerec.recommender.diversity import (
    distinct_categories,
    rebalance_categories,
    select_diverse,
    shuffled,
)
from storerec.recommender.models import (
    Action,
    BehaviorEvent,
    Product,
    RecommendationRequest,
    RecommendationResult,
    Strategy,
)
from storerec.recommender.ranker import rank_collaborative, rank_content_based, rank_popular
from storerec.recommender.similarity import find_neighbors
from storerec.recommender.storage import BehaviorLog, Catalog, utc_now

# Configure module logger
logger = logging.getLogger(__name__)


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


class RecommendationEngine:
    """Stateless recommender over a behavior log and a catalog."""

    def __init__(
        self,
        behavior_log: BehaviorLog,
        catalog: Catalog,
        config: Optional[RecommenderConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.behavior_log = behavior_log
        self.catalog = catalog
        self.config = config or RecommenderConfig()
        self.clock = clock

    def _read(self, source: str, fn: Callable, *args, **kwargs):
        """Call a store method, converting store failures to DataUnavailable."""
        try:
            return fn(*args, **kwargs)
        except StoreRecException:
            raise
        except Exception as e:
            logger.error(
                "Store read failed",
                extra={"source": source, "error": str(e), "error_type": type(e).__name__},
            )
            raise DataUnavailable(source, e) from e

    def _rng(self, rng: Optional[np.random.Generator]) -> np.random.Generator:
        if rng is not None:
            return rng
        return np.random.default_rng(self.config.seed)

    def _resolve_history(
        self, events: Sequence[BehaviorEvent], catalog: Sequence[Product]
    ) -> List[Product]:
        """Map events to products, one entry per event; unknown ids are skipped."""
        known: Dict[str, Optional[Product]] = {product.id: product for product in catalog}
        history = []
        for event in events:
            if not event.product_id:
                continue
            if event.product_id not in known:
                known[event.product_id] = self._read(
                    "catalog", self.catalog.get_product, event.product_id
                )
            product = known[event.product_id]
            if product is not None:
                history.append(product)
        return history

    def recommend(
        self,
        request: RecommendationRequest,
        rng: Optional[np.random.Generator] = None,
    ) -> RecommendationResult:
        """Recommend products for one user.

        Args:
            request: User id, current cart and result size.
            rng: Random source; a generator seeded from the config is created
                per request when omitted.

        Returns:
            RecommendationResult with at most ``request.limit`` distinct active
            products.

        Raises:
            DataUnavailable: If the behavior log or catalog cannot be read.
        """
        start_time = time.perf_counter()
        rng = self._rng(rng)
        limit = request.limit
        user_id = request.user_id

        user_events = self._read("behavior log", self.behavior_log.list_by_user, user_id)
        catalog = self._read("catalog", self.catalog.list_products)

        interacted_ids = {event.product_id for event in user_events if event.product_id}
        cart_ids = set(request.cart_product_ids)

        window_start = _as_utc(self.clock()) - timedelta(hours=self.config.recent_cart_window_hours)
        recent_cart = [
            event
            for event in user_events
            if event.action == Action.ADD_TO_CART
            and event.product_id
            and _as_utc(event.timestamp) > window_start
        ]

        if recent_cart:
            strategy = Strategy.CART
            selected = self._recommend_from_cart(
                user_events, recent_cart, catalog, interacted_ids | cart_ids, limit, rng
            )
        elif not user_events:
            strategy = Strategy.COLD_START
            selected = self._recommend_cold_start(catalog, cart_ids, limit, rng)
        else:
            strategy, selected = self._recommend_collaborative(
                user_id, user_events, catalog, interacted_ids | cart_ids, limit, rng
            )

        products = self._pad(selected, catalog, interacted_ids | cart_ids, limit, rng)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        log_extra = {
            "user_id": user_id,
            "strategy": strategy.value,
            "num_recommendations": len(products),
            "num_padded": len(products) - len(selected),
            "total_time_ms": round(elapsed_ms, 2),
        }
        if elapsed_ms > self.config.time_budget_ms:
            logger.warning("Recommendation exceeded time budget", extra=log_extra)
        else:
            logger.info("Recommendations generated", extra=log_extra)

        return RecommendationResult(user_id=user_id, strategy=strategy, products=products)

    def _recommend_from_cart(
        self,
        user_events: Sequence[BehaviorEvent],
        recent_cart: Sequence[BehaviorEvent],
        catalog: Sequence[Product],
        excluded_ids: Set[str],
        limit: int,
        rng: np.random.Generator,
    ) -> List[Product]:
        """Same-category products for recent cart additions plus a few others.

        The same-category share goes through the diversity selector, with
        backfill limited to the carted categories.
        """
        history = self._resolve_history(user_events, catalog)
        recent_products = self._resolve_history(recent_cart, catalog)
        recent_ids = {event.product_id for event in recent_cart}
        categories = set(distinct_categories([p for p in recent_products if p.is_active]))
        excluded_ids = excluded_ids | recent_ids

        same_category = rank_content_based(
            history, [p for p in catalog if p.category_id in categories], excluded_ids
        )
        other_category = rank_content_based(
            history, [p for p in catalog if p.category_id not in categories], excluded_ids
        )

        diverse_slots = min(self.config.cart_diverse_slots, limit // 3)
        same_slots = limit - diverse_slots

        logger.debug(
            "Cart strategy pools",
            extra={
                "categories": sorted(categories),
                "same_category": len(same_category),
                "other_category": len(other_category),
            },
        )
        same_products = [item.product for item in same_category]
        selected = select_diverse(
            same_products,
            same_slots,
            same_products,
            excluded_ids,
            rng,
            soft_cap=self.config.category_soft_cap,
            min_categories=self.config.min_distinct_categories,
        )
        return selected + [item.product for item in other_category[:diverse_slots]]

    def _recommend_cold_start(
        self,
        catalog: Sequence[Product],
        cart_ids: Set[str],
        limit: int,
        rng: np.random.Generator,
    ) -> List[Product]:
        """A shuffled mix of a few random products per category."""
        eligible = [product for product in catalog if product.id not in cart_ids]
        picks: List[Product] = []
        for category_id in distinct_categories(eligible):
            in_category = [p for p in eligible if p.category_id == category_id]
            picks.extend(shuffled(in_category, rng)[: self.config.cold_start_per_category])
        return shuffled(picks, rng)[:limit]

    def _recommend_collaborative(
        self,
        user_id: str,
        user_events: Sequence[BehaviorEvent],
        catalog: Sequence[Product],
        excluded_ids: Set[str],
        limit: int,
        rng: np.random.Generator,
    ):
        """Rank by neighbor actions, falling back to content scoring."""
        all_events = self._read("behavior log", self.behavior_log.list_all)
        neighbors = find_neighbors(user_id, all_events, self.config.max_neighbors)
        interacted_ids = {event.product_id for event in user_events if event.product_id}

        ranked = rank_collaborative(
            {neighbor_id for neighbor_id, _ in neighbors}, all_events, catalog, interacted_ids
        )
        strategy = Strategy.COLLABORATIVE
        if not ranked:
            logger.info(
                "No neighbor signal, using content-based ranking",
                extra={"user_id": user_id, "num_neighbors": len(neighbors)},
            )
            strategy = Strategy.CONTENT
            history = self._resolve_history(user_events, catalog)
            ranked = rank_content_based(history, catalog, excluded_ids)

        ranked_products = [item.product for item in ranked if item.product.id not in excluded_ids]
        if not ranked_products:
            return strategy, []

        selected = select_diverse(
            ranked_products,
            limit,
            catalog,
            excluded_ids,
            rng,
            soft_cap=self.config.category_soft_cap,
            min_categories=self.config.min_distinct_categories,
        )
        selected = rebalance_categories(
            selected,
            limit,
            catalog,
            excluded_ids,
            rng,
            min_categories=self.config.min_distinct_categories,
            max_replacements=self.config.max_replacements,
        )
        return strategy, selected

    def _pad(
        self,
        selected: Sequence[Product],
        catalog: Sequence[Product],
        excluded_ids: Set[str],
        limit: int,
        rng: np.random.Generator,
    ) -> List[Product]:
        """Deduplicate, drop inactive entries and top up with random products."""
        products: List[Product] = []
        seen: Set[str] = set()
        for product in selected:
            if product.is_active and product.id not in seen:
                products.append(product)
                seen.add(product.id)
        products = products[:limit]

        if len(products) < limit:
            remaining = [p for p in catalog if p.id not in seen and p.id not in excluded_ids]
            products.extend(shuffled(remaining, rng)[: limit - len(products)])
        return products

    def popular(
        self,
        limit: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> List[Product]:
        """Products ranked by weighted actions across all users.

        Falls back to a random sample of active products when the behavior
        log yields no ranked product.

        Raises:
            DataUnavailable: If the behavior log or catalog cannot be read.
        """
        limit = self.config.popular_limit if limit is None else limit
        events = self._read("behavior log", self.behavior_log.list_all)
        catalog = self._read("catalog", self.catalog.list_products)

        ranked = rank_popular(events, catalog, limit)
        if ranked:
            return [item.product for item in ranked]

        logger.info("No behavior signal for popularity, sampling catalog")
        return shuffled(catalog, self._rng(rng))[:limit]
