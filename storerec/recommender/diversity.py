"""Category-diverse selection over ranked candidates.

Randomness (backfill picks, shuffles) always comes from an explicit
``numpy.random.Generator`` so callers can seed it.
"""

import logging
from collections import Counter
from typing import AbstractSet, List, Optional, Sequence, TypeVar

import numpy as np

from storerec.recommender.models import Product

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_SOFT_CAP = 2
DEFAULT_MIN_CATEGORIES = 3
DEFAULT_MAX_REPLACEMENTS = 2

T = TypeVar("T")


def shuffled(items: Sequence[T], rng: np.random.Generator) -> List[T]:
    """Return a shuffled copy of ``items``."""
    return [items[idx] for idx in rng.permutation(len(items))]


def random_choice(items: Sequence[T], rng: np.random.Generator) -> Optional[T]:
    """Pick one item uniformly, or None from an empty sequence."""
    if not items:
        return None
    return items[int(rng.integers(len(items)))]


def distinct_categories(products: Sequence[Product]) -> List[str]:
    """Non-null category ids in order of first appearance."""
    seen = {}
    for product in products:
        if product.category_id is not None:
            seen.setdefault(product.category_id, None)
    return list(seen)


def _eligible(pool: Sequence[Product], excluded_ids: AbstractSet[str]) -> List[Product]:
    return [product for product in pool if product.is_active and product.id not in excluded_ids]


def pick_from_absent_categories(
    selected: Sequence[Product],
    pool: Sequence[Product],
    excluded_ids: AbstractSet[str],
    rng: np.random.Generator,
    max_picks: int,
) -> List[Product]:
    """Pick one random eligible product from each category missing in ``selected``.

    Categories are visited in pool (catalog) order.

    Args:
        selected: Current selection.
        pool: Active products in catalog order.
        excluded_ids: Product ids never to pick.
        rng: Random source.
        max_picks: Maximum number of products to return.

    Returns:
        Picked products, at most one per absent category.
    """
    if max_picks <= 0:
        return []
    taken = {product.id for product in selected}
    represented = set(distinct_categories(selected))
    candidates = [product for product in _eligible(pool, excluded_ids) if product.id not in taken]

    picks = []
    for category_id in distinct_categories(candidates):
        if len(picks) >= max_picks:
            break
        if category_id in represented:
            continue
        pick = random_choice([p for p in candidates if p.category_id == category_id], rng)
        if pick is not None:
            picks.append(pick)
    return picks


def select_diverse(
    ranked: Sequence[Product],
    n: int,
    pool: Sequence[Product],
    excluded_ids: AbstractSet[str],
    rng: np.random.Generator,
    soft_cap: int = DEFAULT_SOFT_CAP,
    min_categories: int = DEFAULT_MIN_CATEGORIES,
) -> List[Product]:
    """Select up to ``n`` products from a ranked list, spreading categories.

    Items are taken in rank order until a category holds ``soft_cap``
    selections; further items of that category are deferred. If the
    selection then spans fewer than ``min(min_categories, available
    categories)`` categories, one random pool product per absent category is
    added. Deferred items fill the remaining slots in rank order, and any slot
    still open gets one product from each remaining absent category.

    Args:
        ranked: Candidates, best first.
        n: Target count.
        pool: Active products in catalog order, used for backfill.
        excluded_ids: Product ids never to select.
        rng: Random source for backfill picks.
        soft_cap: Selections per category before deferring.
        min_categories: Category spread to aim for.

    Returns:
        At most ``n`` distinct products; a short list is valid.
    """
    selected: List[Product] = []
    selected_ids = set()
    counts: Counter = Counter()
    deferred: List[Product] = []

    def take(product: Product) -> None:
        selected.append(product)
        selected_ids.add(product.id)
        if product.category_id is not None:
            counts[product.category_id] += 1

    valid_ranked = [
        product
        for product in ranked
        if product.is_active and product.id not in excluded_ids
    ]
    for product in valid_ranked:
        if len(selected) >= n:
            break
        if product.id in selected_ids:
            continue
        if product.category_id is not None and counts[product.category_id] >= soft_cap:
            deferred.append(product)
            continue
        take(product)

    available = distinct_categories(valid_ranked + _eligible(pool, excluded_ids))
    target = min(min_categories, len(available))

    if len(selected) < n and len(counts) < target:
        picks = pick_from_absent_categories(
            selected, pool, excluded_ids, rng, min(target - len(counts), n - len(selected))
        )
        for product in picks:
            take(product)

    for product in deferred:
        if len(selected) >= n:
            break
        if product.id not in selected_ids:
            take(product)

    if len(selected) < n:
        for product in pick_from_absent_categories(
            selected, pool, excluded_ids, rng, n - len(selected)
        ):
            take(product)

    logger.debug(
        "Diversity selection done",
        extra={
            "ranked": len(valid_ranked),
            "selected": len(selected),
            "deferred": len(deferred),
            "categories": len(counts),
        },
    )
    return selected


def rebalance_categories(
    selected: Sequence[Product],
    n: int,
    pool: Sequence[Product],
    excluded_ids: AbstractSet[str],
    rng: np.random.Generator,
    min_categories: int = DEFAULT_MIN_CATEGORIES,
    max_replacements: int = DEFAULT_MAX_REPLACEMENTS,
) -> List[Product]:
    """Bring under-diverse selections up to the category target.

    When fewer than ``min(min_categories, catalog categories)`` categories are
    represented, one random product is drawn from each absent category (at
    most ``max_replacements``). Each pick is appended if there is room,
    otherwise it replaces the lowest-ranked entry whose category appears more
    than once.

    Returns:
        A new list; ``selected`` is not modified.
    """
    result = list(selected)
    if not result:
        return result

    represented = distinct_categories(result)
    catalog_categories = distinct_categories(result + _eligible(pool, excluded_ids))
    target = min(min_categories, len(catalog_categories))
    if len(represented) >= target:
        return result

    picks = pick_from_absent_categories(
        result, pool, excluded_ids, rng, min(target - len(represented), max_replacements)
    )
    replaced = 0
    for pick in picks:
        if len(result) < n:
            result.append(pick)
            continue
        counts = Counter(p.category_id for p in result if p.category_id is not None)
        victim = next(
            (
                idx
                for idx in range(len(result) - 1, -1, -1)
                if result[idx].category_id is not None and counts[result[idx].category_id] > 1
            ),
            None,
        )
        if victim is None:
            break
        del result[victim]
        result.append(pick)
        replaced += 1

    if picks:
        logger.debug(
            "Rebalanced categories",
            extra={"added": len(picks), "replaced": replaced, "target": target},
        )
    return result
