"""Candidate ranking.

Two ranking modes feed the orchestrator:

- content-based: scores each candidate against one user's history by category
  affinity, tag overlap, price proximity and rating;
- collaborative: sums the weighted actions of similar users per product.

Popularity uses the collaborative weights summed over every user. All
functions are total: sparse or malformed inputs contribute zero instead of
raising.
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from storerec.recommender.models import BehaviorEvent, Product
from storerec.recommender.utils import parse_decimal

# Configure module logger
logger = logging.getLogger(__name__)

# Content-based scoring weights
CATEGORY_WEIGHT = 2.0
RATING_WEIGHT = 0.5


@dataclass(frozen=True)
class ScoredProduct:
    """A candidate with its total score and per-signal components."""

    product: Product
    score: float
    components: Dict[str, float] = field(default_factory=dict)


def _average_price(history: Sequence[Product]) -> Optional[float]:
    prices = [parse_decimal(product.price) for product in history]
    prices = [price for price in prices if price is not None]
    if not prices:
        return None
    return sum(prices) / len(prices)


def score_content_based(
    candidate: Product,
    history: Sequence[Product],
    history_tags: Optional[AbstractSet[str]] = None,
    avg_price: Optional[float] = None,
) -> Dict[str, float]:
    """Score one candidate against a user's history.

    Args:
        candidate: Product being scored.
        history: Products behind the user's behavior events, one entry per
            event (repeat interactions count repeatedly).
        history_tags: Precomputed union of history tags (computed if None).
        avg_price: Precomputed average history price (computed if None).

    Returns:
        Dictionary with ``category``, ``tag``, ``price``, ``rating`` and
        ``total`` scores.
    """
    if history_tags is None:
        history_tags = {tag for product in history for tag in product.tags or []}
    if avg_price is None:
        avg_price = _average_price(history)

    category_score = 0.0
    if candidate.category_id is not None:
        category_score = CATEGORY_WEIGHT * sum(
            1 for product in history if product.category_id == candidate.category_id
        )

    tag_score = float(sum(1 for tag in candidate.tags or [] if tag in history_tags))

    price_score = 0.0
    candidate_price = parse_decimal(candidate.price)
    if avg_price and candidate_price is not None:
        price_score = max(0.0, 1.0 - abs(avg_price - candidate_price) / abs(avg_price))

    rating = parse_decimal(candidate.rating)
    rating_score = rating * RATING_WEIGHT if rating is not None else 0.0

    return {
        "category": category_score,
        "tag": tag_score,
        "price": price_score,
        "rating": rating_score,
        "total": category_score + tag_score + price_score + rating_score,
    }


def rank_content_based(
    history: Sequence[Product],
    candidates: Iterable[Product],
    exclude_ids: AbstractSet[str] = frozenset(),
) -> List[ScoredProduct]:
    """Rank candidates by content score against a user's history.

    Inactive candidates and excluded ids are dropped. Ties keep the
    candidates' input (catalog) order.
    """
    history_tags = {tag for product in history for tag in product.tags or []}
    avg_price = _average_price(history)

    scored = []
    for candidate in candidates:
        if not candidate.is_active or candidate.id in exclude_ids:
            continue
        components = score_content_based(candidate, history, history_tags, avg_price)
        scored.append(ScoredProduct(candidate, components["total"], components))

    scored.sort(key=lambda item: item.score, reverse=True)
    return scored


def aggregate_action_weights(
    events: Iterable[BehaviorEvent],
    user_ids: Optional[AbstractSet[str]] = None,
    exclude_ids: AbstractSet[str] = frozenset(),
) -> Dict[str, float]:
    """Sum action weights per product.

    Args:
        events: Behavior log snapshot.
        user_ids: Only count events of these users (all users if None).
        exclude_ids: Product ids to leave out.

    Returns:
        Mapping from product id to accumulated weight.
    """
    weights: Dict[str, float] = {}
    for event in events:
        if not event.product_id or event.product_id in exclude_ids:
            continue
        if user_ids is not None and event.user_id not in user_ids:
            continue
        weights[event.product_id] = weights.get(event.product_id, 0.0) + event.action.weight
    return weights


def _rank_by_weight(weights: Dict[str, float], catalog: Iterable[Product]) -> List[ScoredProduct]:
    ranked = [
        ScoredProduct(product, weights[product.id], {"weight": weights[product.id]})
        for product in catalog
        if product.is_active and product.id in weights
    ]
    ranked.sort(key=lambda item: item.score, reverse=True)
    return ranked


def rank_collaborative(
    neighbor_ids: AbstractSet[str],
    events: Iterable[BehaviorEvent],
    catalog: Iterable[Product],
    interacted_ids: AbstractSet[str],
) -> List[ScoredProduct]:
    """Rank products by the weighted actions of neighbor users.

    Args:
        neighbor_ids: Users with nonzero similarity to the target user.
        events: Behavior log snapshot.
        catalog: Active products in catalog order (fixes tie order).
        interacted_ids: Products the target user already interacted with.

    Returns:
        Candidates sorted by accumulated weight descending.
    """
    if not neighbor_ids:
        return []
    weights = aggregate_action_weights(events, user_ids=neighbor_ids, exclude_ids=interacted_ids)
    return _rank_by_weight(weights, catalog)


def rank_popular(
    events: Iterable[BehaviorEvent],
    catalog: Iterable[Product],
    limit: int,
) -> List[ScoredProduct]:
    """Rank active products by action weights summed across all users."""
    weights = aggregate_action_weights(events)
    return _rank_by_weight(weights, catalog)[:limit]
