"""Tests for the recommendation engine.

Covers strategy selection (cart, cold start, collaborative, content), the
result guarantees every strategy must keep, and store failure handling.
"""

import logging
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from storerec.api.exceptions import DataUnavailable
from storerec.recommender.config import RecommenderConfig
from storerec.recommender.engine import RecommendationEngine
from storerec.recommender.models import (
    Action,
    BehaviorEvent,
    Product,
    RecommendationRequest,
    Strategy,
)
from storerec.recommender.storage import InMemoryStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_event(user_id, product_id, action=Action.VIEW, hours_ago=48.0):
    return BehaviorEvent(
        id=str(uuid.uuid4()),
        user_id=user_id,
        product_id=product_id,
        action=action,
        timestamp=NOW - timedelta(hours=hours_ago),
    )


def make_store(products, events=()):
    store = InMemoryStore(clock=lambda: NOW)
    for product in products:
        store.add_product(product)
    store.load_events(events)
    return store


def make_engine(store, **config):
    config.setdefault("seed", 0)
    return RecommendationEngine(
        store, store, config=RecommenderConfig(**config), clock=lambda: NOW
    )


def recommend(engine, user_id, cart=(), limit=6):
    return engine.recommend(
        RecommendationRequest(user_id=user_id, cart_product_ids=list(cart), limit=limit)
    )


def product(product_id, category_id, price="10", **kwargs):
    return Product(id=product_id, category_id=category_id, price=price, **kwargs)


# ===== Cold start =====


def test_cold_start_covers_all_categories():
    """An empty log yields a category mix capped at two per category."""
    store = make_store(
        [
            product("a1", "A"),
            product("a2", "A"),
            product("b1", "B"),
            product("b2", "B"),
            product("c1", "C"),
        ]
    )

    result = recommend(make_engine(store), "U")
    categories = Counter(p.category_id for p in result.products)

    assert result.strategy == Strategy.COLD_START
    assert len(result.products) == 5
    assert set(categories) == {"A", "B", "C"}
    assert max(categories.values()) <= 2


def test_cold_start_draws_at_most_two_per_category_before_padding():
    """Large categories contribute two random products each."""
    store = make_store(
        [product(f"a{i}", "A") for i in range(5)]
        + [product(f"b{i}", "B") for i in range(5)]
        + [product(f"c{i}", "C") for i in range(5)]
    )

    result = recommend(make_engine(store), "guest-1")
    categories = Counter(p.category_id for p in result.products)

    assert len(result.products) == 6
    assert categories == {"A": 2, "B": 2, "C": 2}


def test_cold_start_skips_cart_and_inactive_products():
    """Products already in the cart and inactive products are never returned."""
    store = make_store(
        [
            product("a1", "A"),
            product("a2", "A", is_active=False),
            product("b1", "B"),
            product("c1", "C"),
        ]
    )

    result = recommend(make_engine(store), "U", cart=["b1"])

    assert sorted(result.product_ids) == ["a1", "c1"]


def test_cold_start_deterministic_for_seed():
    """The same seed gives the same cold-start mix."""
    store = make_store([product(f"{c}{i}", c) for c in "ABCD" for i in range(4)])

    first = recommend(make_engine(store, seed=11), "U")
    second = recommend(make_engine(store, seed=11), "U")

    assert first.product_ids == second.product_ids


def test_explicit_rng_overrides_config_seed():
    """A caller-supplied generator drives the randomness."""
    store = make_store([product(f"{c}{i}", c) for c in "ABCD" for i in range(4)])
    engine = make_engine(store, seed=None)
    request = RecommendationRequest(user_id="U")

    first = engine.recommend(request, rng=np.random.default_rng(4))
    second = engine.recommend(request, rng=np.random.default_rng(4))

    assert first.product_ids == second.product_ids


def test_empty_catalog_returns_empty_list():
    """Nothing to recommend is not an error."""
    result = recommend(make_engine(make_store([])), "U")

    assert result.products == []
    assert result.strategy == Strategy.COLD_START


# ===== Cart strategy =====


@pytest.fixture
def cart_store():
    products = [product("P", "electronics")]
    products += [product(f"E{i}", "electronics") for i in range(1, 4)]
    products += [product(f"B{i}", "books") for i in range(1, 5)]
    events = [make_event("U", "P", Action.ADD_TO_CART, hours_ago=1)]
    return make_store(products, events)


def test_cart_strategy_same_category_then_others(cart_store):
    """A recent cart addition leads with its category, then other categories."""
    result = recommend(make_engine(cart_store), "U")
    ids = result.product_ids

    assert result.strategy == Strategy.CART
    assert len(ids) == 6
    assert "P" not in ids
    assert ids[:5] == ["E1", "E2", "E3", "B1", "B2"]
    assert ids[5] in {"B3", "B4"}


def test_cart_strategy_excludes_request_cart(cart_store):
    """Products currently in the cart are excluded as well."""
    result = recommend(make_engine(cart_store), "U", cart=["E1", "B1"])

    assert result.strategy == Strategy.CART
    assert "E1" not in result.product_ids
    assert "B1" not in result.product_ids
    assert result.product_ids[:2] == ["E2", "E3"]


def test_cart_strategy_small_limit_reserves_no_other_slots(cart_store):
    """With a limit below three every slot goes to the cart categories."""
    result = recommend(make_engine(cart_store), "U", limit=2)

    assert result.product_ids == ["E1", "E2"]


def test_cart_strategy_splits_slots_across_carted_categories():
    """Two carted categories share the same-category slots."""
    products = [product("P", "electronics"), product("Q", "books")]
    products += [product(f"E{i}", "electronics") for i in range(1, 5)]
    products += [product(f"B{i}", "books") for i in range(1, 5)]
    products += [product("T1", "toys"), product("T2", "toys")]
    events = [
        make_event("U", "P", Action.ADD_TO_CART, hours_ago=1),
        make_event("U", "Q", Action.ADD_TO_CART, hours_ago=2),
    ]
    store = make_store(products, events)

    result = recommend(make_engine(store), "U")

    assert result.strategy == Strategy.CART
    assert result.product_ids == ["E1", "E2", "B1", "B2", "T1", "T2"]


def test_old_cart_activity_is_not_recent():
    """Cart additions outside the window fall through to collaborative logic."""
    store = make_store(
        [product("P", "electronics"), product("E1", "electronics"), product("B1", "books")],
        [make_event("U", "P", Action.ADD_TO_CART, hours_ago=30)],
    )

    result = recommend(make_engine(store), "U")

    assert result.strategy in (Strategy.COLLABORATIVE, Strategy.CONTENT)
    assert "P" not in result.product_ids


def test_cart_window_is_configurable():
    """A wider window turns older cart activity into the cart strategy."""
    store = make_store(
        [product("P", "electronics"), product("E1", "electronics")],
        [make_event("U", "P", Action.ADD_TO_CART, hours_ago=30)],
    )

    result = recommend(make_engine(store, recent_cart_window_hours=48), "U")

    assert result.strategy == Strategy.CART
    assert result.product_ids == ["E1"]


# ===== Collaborative and content strategies =====


@pytest.fixture
def collaborative_store():
    products = [
        product("P1", "electronics", price="100"),
        product("P2", "books", price="20"),
        product("P3", "toys", price="15"),
        product("P4", "garden", price="30"),
        product("P5", "garden", price="35"),
        product("P6", "electronics", price="90"),
    ]
    events = [
        make_event("U", "P1", Action.PURCHASE),
        make_event("V", "P1", Action.PURCHASE),
        make_event("V", "P2", Action.PURCHASE),
        make_event("V", "P3", Action.VIEW),
        make_event("W", "P5", Action.VIEW),
    ]
    return make_store(products, events)


def test_collaborative_ranks_neighbor_purchases_first(collaborative_store):
    """A neighbor's purchase comes ahead of what the neighbor only viewed."""
    result = recommend(make_engine(collaborative_store), "U")
    ids = result.product_ids

    assert result.strategy == Strategy.COLLABORATIVE
    assert ids[:2] == ["P2", "P3"]
    assert "P1" not in ids
    assert sorted(ids) == ["P2", "P3", "P4", "P5", "P6"]


def test_collaborative_excludes_cart_products(collaborative_store):
    """Cart products are never recommended, even if neighbors bought them."""
    result = recommend(make_engine(collaborative_store), "U", cart=["P2"])

    assert result.product_ids[0] == "P3"
    assert "P2" not in result.product_ids


def test_no_neighbors_falls_back_to_content():
    """Without overlapping users the ranking is content-based."""
    store = make_store(
        [
            product("B1", "books", price="10"),
            product("T1", "toys", price="500"),
            product("B2", "books", price="12"),
            product("G1", "garden", price="11"),
        ],
        [make_event("U", "B1", Action.PURCHASE), make_event("V", "T1", Action.VIEW)],
    )

    result = recommend(make_engine(store), "U", limit=2)

    assert result.strategy == Strategy.CONTENT
    assert result.product_ids[0] == "B2"
    assert "B1" not in result.product_ids


def test_neighbor_cutoff_zero_uses_content(collaborative_store):
    """A zero neighbor cutoff disables the collaborative ranking."""
    result = recommend(make_engine(collaborative_store, max_neighbors=0), "U")

    assert result.strategy == Strategy.CONTENT
    assert "P1" not in result.product_ids


def test_collaborative_result_is_category_diverse():
    """Neighbors focused on one category still yield three categories."""
    products = [product(f"A{i}", "A") for i in range(1, 8)]
    products += [product("B1", "B"), product("C1", "C")]
    events = [make_event("U", "A1", Action.PURCHASE)]
    events += [make_event("V", f"A{i}", Action.PURCHASE) for i in range(1, 8)]
    store = make_store(products, events)

    result = recommend(make_engine(store), "U")
    categories = Counter(p.category_id for p in result.products)

    assert result.strategy == Strategy.COLLABORATIVE
    assert len(result.products) == 6
    assert set(categories) == {"A", "B", "C"}
    assert result.product_ids[:2] == ["A2", "A3"]


# ===== Guarantees across strategies =====


@pytest.fixture
def busy_store():
    rng = np.random.default_rng(123)
    products = []
    for category_id in ("books", "toys", "garden", "kitchen"):
        for index in range(6):
            products.append(
                product(
                    f"{category_id}-{index}",
                    category_id,
                    price=str(5 + index * 7),
                    rating=str(1 + index % 5),
                    tags=[category_id, f"t{index % 3}"],
                    is_active=index != 5,
                )
            )
    actions = list(Action)
    events = []
    for user_index in range(12):
        user_id = f"user-{user_index}"
        for _ in range(int(rng.integers(1, 8))):
            events.append(
                make_event(
                    user_id,
                    products[int(rng.integers(len(products)))].id,
                    actions[int(rng.integers(len(actions)))],
                    hours_ago=float(rng.uniform(0.5, 200)),
                )
            )
    return make_store(products, events)


@pytest.mark.parametrize("limit", [1, 4, 6, 10])
def test_results_keep_guarantees(busy_store, limit):
    """No duplicates, active only, exclusions honored and size bound met."""
    engine = make_engine(busy_store)
    active_ids = {p.id for p in busy_store.list_products()}
    user_ids = [f"user-{i}" for i in range(12)] + ["stranger"]

    for user_id in user_ids:
        cart = ["books-0"]
        result = recommend(engine, user_id, cart=cart, limit=limit)
        ids = result.product_ids
        interacted = {e.product_id for e in busy_store.list_by_user(user_id)}
        purchased = {
            e.product_id for e in busy_store.list_by_user(user_id) if e.action == Action.PURCHASE
        }
        eligible = active_ids - interacted - set(cart)

        assert len(ids) == len(set(ids))
        assert all(p.is_active for p in result.products)
        assert not set(ids) & set(cart)
        if result.strategy != Strategy.COLD_START:
            assert not set(ids) & purchased
        assert len(ids) == min(limit, len(eligible))


# ===== Popular products =====


def test_popular_ranks_by_weighted_actions(collaborative_store):
    """Popularity sums action weights across every user."""
    engine = make_engine(collaborative_store)

    assert engine.popular() == [
        collaborative_store.get_product(product_id) for product_id in ("P1", "P2", "P3", "P5")
    ]
    assert [p.id for p in engine.popular(2)] == ["P1", "P2"]


def test_popular_falls_back_to_catalog_sample():
    """An empty log returns a random sample of active products."""
    store = make_store([product(f"p{i}", "A", is_active=i != 0) for i in range(15)])
    engine = make_engine(store)

    popular = engine.popular()

    assert len(popular) == 10
    assert len({p.id for p in popular}) == 10
    assert all(p.is_active for p in popular)
    assert [p.id for p in engine.popular()] == [p.id for p in popular]


# ===== Store failures and time budget =====


class FailingLogStore(InMemoryStore):
    """Store whose full-log snapshot is unavailable."""

    def list_all(self):
        raise ConnectionError("connection reset")


class FailingCatalogStore(InMemoryStore):
    def list_products(self, *args, **kwargs):
        raise TimeoutError("catalog timed out")


def test_log_failure_raises_data_unavailable():
    """A failing behavior log surfaces as DataUnavailable, not a partial result."""
    store = FailingLogStore(clock=lambda: NOW)
    store.add_product(product("P1", "books"))
    store.load_events([make_event("U", "P1")])

    with pytest.raises(DataUnavailable) as exc_info:
        recommend(make_engine(store), "U")

    assert exc_info.value.status_code == 503
    assert exc_info.value.details["source"] == "behavior log"
    assert exc_info.value.details["error_type"] == "ConnectionError"
    with pytest.raises(DataUnavailable):
        make_engine(store).popular()


def test_catalog_failure_raises_data_unavailable():
    store = FailingCatalogStore(clock=lambda: NOW)

    with pytest.raises(DataUnavailable) as exc_info:
        recommend(make_engine(store), "U")

    assert exc_info.value.details["source"] == "catalog"
    assert "catalog timed out" in exc_info.value.message


def test_time_budget_overrun_is_logged(collaborative_store, caplog):
    """Exceeding the time budget logs a warning but still returns results."""
    engine = make_engine(collaborative_store, time_budget_ms=0.0)

    with caplog.at_level(logging.WARNING, logger="storerec.recommender.engine"):
        result = recommend(engine, "U")

    assert result.products
    assert "Recommendation exceeded time budget" in caplog.text
