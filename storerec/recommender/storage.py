"""Store interfaces consumed by the recommender, and an in-memory store.

The engine only reads snapshots through ``BehaviorLog`` and ``Catalog``; any
backing store (a database, a cache) can stand in for ``InMemoryStore`` by
implementing the same methods.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from storerec.api.exceptions import ValidationError
from storerec.recommender.models import Action, BehaviorEvent, BehaviorEventInput, Product
from storerec.recommender.utils import (
    check_data_exists,
    get_data_paths,
    load_behavior_csv,
    load_products_csv,
    parse_decimal,
)

# Configure module logger
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BehaviorLog(ABC):
    """Append-only log of behavior events."""

    @abstractmethod
    def record(self, event_input: BehaviorEventInput) -> BehaviorEvent:
        """Validate and append one event, stamped with the server clock.

        Raises:
            ValidationError: If the action is unknown or the user id missing.
        """

    @abstractmethod
    def list_by_user(self, user_id: str) -> List[BehaviorEvent]:
        """Return every event for a user (empty list if none)."""

    @abstractmethod
    def list_all(self) -> List[BehaviorEvent]:
        """Return a snapshot of the whole log."""


class Catalog(ABC):
    """Read accessor over product records."""

    @abstractmethod
    def list_products(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> List[Product]:
        """Return active products in catalog order, optionally filtered."""

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        """Return a product by id, active or not."""


def _matches_search(product: Product, search: str) -> bool:
    needle = search.lower()
    if needle in product.name.lower() or needle in product.description.lower():
        return True
    return any(needle in tag.lower() for tag in product.tags or [])


def _within_price(product: Product, min_price: Optional[float], max_price: Optional[float]) -> bool:
    if min_price is None and max_price is None:
        return True
    price = parse_decimal(product.price)
    if price is None:
        return False
    if min_price is not None and price < min_price:
        return False
    if max_price is not None and price > max_price:
        return False
    return True


def validate_event_input(event_input: BehaviorEventInput) -> Action:
    """Check a behavior input and return its parsed action.

    Raises:
        ValidationError: If the user id is missing or not a string, the
            product id is not a string, or the action is unknown.
    """
    user_id = event_input.user_id
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError(
            "userId is required and must be a non-empty string", details={"field": "userId"}
        )
    if event_input.product_id is not None and not isinstance(event_input.product_id, str):
        raise ValidationError("productId must be a string", details={"field": "productId"})
    allowed = [action.value for action in Action]
    if not isinstance(event_input.action, str) or event_input.action not in allowed:
        raise ValidationError(
            f"action must be one of {allowed}",
            details={"field": "action", "value": event_input.action, "allowed": allowed},
        )
    return Action(event_input.action)


class InMemoryStore(BehaviorLog, Catalog):
    """Process-local behavior log and catalog.

    Writes take a lock; reads return copies so callers operate on a
    consistent snapshot while new events keep arriving.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = threading.Lock()
        self._events: List[BehaviorEvent] = []
        self._products: Dict[str, Product] = {}

    # Behavior log

    def record(self, event_input: BehaviorEventInput) -> BehaviorEvent:
        action = validate_event_input(event_input)
        event = BehaviorEvent(
            id=str(uuid.uuid4()),
            user_id=event_input.user_id,
            product_id=event_input.product_id or None,
            action=action,
            timestamp=self._clock(),
        )
        with self._lock:
            self._events.append(event)

        logger.debug(
            "Recorded behavior event",
            extra={
                "event_id": event.id,
                "user_id": event.user_id,
                "product_id": event.product_id,
                "action": event.action.value,
            },
        )
        return event

    def load_events(self, events: Iterable[BehaviorEvent]) -> int:
        """Append historical events as-is (seeding only).

        Returns:
            Number of events added.
        """
        events = list(events)
        with self._lock:
            self._events.extend(events)
        return len(events)

    def list_by_user(self, user_id: str) -> List[BehaviorEvent]:
        with self._lock:
            return [event for event in self._events if event.user_id == user_id]

    def list_all(self) -> List[BehaviorEvent]:
        with self._lock:
            return list(self._events)

    # Catalog

    def add_product(self, product: Product) -> Product:
        """Insert or replace a product (seeding only)."""
        with self._lock:
            self._products[product.id] = product
        return product

    def list_products(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> List[Product]:
        with self._lock:
            products = [product for product in self._products.values() if product.is_active]

        if category_id:
            products = [p for p in products if p.category_id == category_id]
        if search:
            products = [p for p in products if _matches_search(p, search)]
        return [p for p in products if _within_price(p, min_price, max_price)]

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            return self._products.get(product_id)

    def stats(self) -> Dict[str, int]:
        """Counts for the status endpoint."""
        with self._lock:
            return {
                "num_products": len(self._products),
                "num_active_products": sum(1 for p in self._products.values() if p.is_active),
                "num_events": len(self._events),
                "num_users": len({event.user_id for event in self._events}),
            }


def load_store_from_dir(data_dir: str, clock: Callable[[], datetime] = utc_now) -> InMemoryStore:
    """Build an in-memory store seeded from a data directory.

    Args:
        data_dir: Directory containing ``products.csv`` and, optionally,
            ``behavior.csv``.
        clock: Clock used for newly recorded events.

    Returns:
        A seeded store.

    Raises:
        FileNotFoundError: If the directory has no products snapshot.
    """
    if not check_data_exists(data_dir):
        raise FileNotFoundError(f"No products snapshot found in {data_dir}")

    products_path, behavior_path = get_data_paths(data_dir)
    store = InMemoryStore(clock=clock)
    for product in load_products_csv(str(products_path)):
        store.add_product(product)
    if behavior_path.exists():
        store.load_events(load_behavior_csv(str(behavior_path)))

    logger.info(f"Seeded store from {data_dir}", extra=store.stats())
    return store
