"""Tests for the in-memory behavior log and catalog."""

import threading
from datetime import datetime, timezone

import pytest

from storerec.api.exceptions import ValidationError
from storerec.recommender.models import Action, BehaviorEventInput, Product
from storerec.recommender.storage import InMemoryStore, load_store_from_dir

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    store = InMemoryStore(clock=lambda: NOW)
    store.add_product(
        Product(
            id="lamp",
            name="Desk Lamp",
            description="Warm LED light",
            category_id="home",
            price="24.50",
            tags=["lighting"],
        )
    )
    store.add_product(
        Product(id="novel", name="Mystery Novel", category_id="books", price="12", tags=["fiction"])
    )
    store.add_product(Product(id="old", name="Retired Lamp", category_id="home", price="9", is_active=False))
    store.add_product(Product(id="odd", name="Gift card", category_id="gifts", price="varies"))
    return store


# ===== Behavior log =====


def test_record_stamps_server_time(store):
    """Recorded events get an id and the store clock's timestamp."""
    event = store.record(BehaviorEventInput(user_id="guest-1", product_id="lamp", action="view"))

    assert event.id
    assert event.user_id == "guest-1"
    assert event.action == Action.VIEW
    assert event.timestamp == NOW
    assert store.list_by_user("guest-1") == [event]


def test_record_accepts_camel_case_input(store):
    """Inputs parsed from JSON use camelCase keys."""
    event_input = BehaviorEventInput.model_validate(
        {"userId": "U", "productId": "novel", "action": "purchase"}
    )

    event = store.record(event_input)

    assert event.product_id == "novel"
    assert event.action == Action.PURCHASE


def test_record_without_product_is_kept(store):
    """A missing or empty product id is stored as null."""
    event = store.record(BehaviorEventInput(user_id="U", product_id="", action="view"))

    assert event.product_id is None
    assert len(store.list_all()) == 1


@pytest.mark.parametrize("action", ["click", "", None, "VIEW", 5, ["view"]])
def test_record_rejects_unknown_action(store, action):
    """Unknown actions are rejected and nothing is appended."""
    with pytest.raises(ValidationError) as exc_info:
        store.record(BehaviorEventInput(user_id="U", product_id="lamp", action=action))

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["field"] == "action"
    assert store.list_all() == []


@pytest.mark.parametrize("user_id", [None, "", "   ", 42])
def test_record_requires_user_id(store, user_id):
    with pytest.raises(ValidationError) as exc_info:
        store.record(BehaviorEventInput(user_id=user_id, product_id="lamp", action="view"))

    assert exc_info.value.details["field"] == "userId"


def test_list_by_user_unknown_is_empty(store):
    assert store.list_by_user("nobody") == []


def test_list_all_returns_snapshot(store):
    """Later writes do not change a snapshot already handed out."""
    store.record(BehaviorEventInput(user_id="U", product_id="lamp", action="view"))
    snapshot = store.list_all()

    store.record(BehaviorEventInput(user_id="V", product_id="lamp", action="view"))

    assert len(snapshot) == 1
    assert len(store.list_all()) == 2


def test_concurrent_records_are_all_kept(store):
    """Parallel writers never lose events."""

    def writer(index):
        for _ in range(50):
            store.record(BehaviorEventInput(user_id=f"user-{index}", product_id="lamp", action="view"))

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    events = store.list_all()
    assert len(events) == 400
    assert len({event.id for event in events}) == 400
    assert len(store.list_by_user("user-3")) == 50


# ===== Catalog =====


def test_list_products_active_only_in_order(store):
    assert [p.id for p in store.list_products()] == ["lamp", "novel", "odd"]


def test_list_products_filters(store):
    """Category, text and price filters combine."""
    assert [p.id for p in store.list_products(category_id="home")] == ["lamp"]
    assert [p.id for p in store.list_products(search="lamp")] == ["lamp"]
    assert [p.id for p in store.list_products(search="LED")] == ["lamp"]
    assert [p.id for p in store.list_products(search="fiction")] == ["novel"]
    assert [p.id for p in store.list_products(min_price=20)] == ["lamp"]
    assert [p.id for p in store.list_products(max_price=20)] == ["novel"]
    assert store.list_products(category_id="home", max_price=10) == []


def test_get_product_includes_inactive(store):
    assert store.get_product("old").is_active is False
    assert store.get_product("missing") is None


def test_stats(store):
    store.record(BehaviorEventInput(user_id="U", product_id="lamp", action="view"))
    store.record(BehaviorEventInput(user_id="U", product_id="novel", action="purchase"))

    assert store.stats() == {
        "num_products": 4,
        "num_active_products": 3,
        "num_events": 2,
        "num_users": 1,
    }


# ===== Seeding from disk =====


def test_load_store_from_dir(tmp_path):
    """A data directory seeds both the catalog and the behavior log."""
    (tmp_path / "products.csv").write_text(
        "id,name,category_id,price,tags,rating,is_active\n"
        "p1,Lamp,home,20,lighting|desk,4.5,true\n"
        "p2,Old Lamp,home,15,,,false\n"
    )
    (tmp_path / "behavior.csv").write_text(
        "user_id,product_id,action,timestamp\n"
        "u1,p1,view,2024-05-01T10:00:00Z\n"
    )

    store = load_store_from_dir(str(tmp_path))

    assert [p.id for p in store.list_products()] == ["p1"]
    assert store.get_product("p1").tags == ["lighting", "desk"]
    assert [e.product_id for e in store.list_by_user("u1")] == ["p1"]


def test_load_store_without_behavior_file(tmp_path):
    (tmp_path / "products.csv").write_text("id,category_id,price\np1,home,20\n")

    store = load_store_from_dir(str(tmp_path))

    assert store.list_all() == []
    assert store.stats()["num_products"] == 1


def test_load_store_missing_snapshot(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_store_from_dir(str(tmp_path))
