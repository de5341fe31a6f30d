"""Domain models for the recommendation engine.

Products and behavior events are immutable pydantic models. Attribute names
are snake_case; JSON uses camelCase (``userId``, ``categoryId``) to match the
storefront's wire format.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_LIMIT = 6


class Action(str, Enum):
    """Kinds of tracked product interactions."""

    VIEW = "view"
    ADD_TO_CART = "add_to_cart"
    PURCHASE = "purchase"

    @property
    def weight(self) -> int:
        """Weight of the action in collaborative and popularity scoring."""
        return ACTION_WEIGHTS[self]


ACTION_WEIGHTS = {
    Action.PURCHASE: 3,
    Action.ADD_TO_CART: 2,
    Action.VIEW: 1,
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Product(_CamelModel):
    """Canonical product record as seen by the recommender.

    ``price`` and ``rating`` are decimal strings; scoring parses them and
    treats unparseable values as missing.
    """

    id: str
    name: str = ""
    description: str = ""
    category_id: Optional[str] = None
    price: str = "0"
    tags: Optional[List[str]] = None
    rating: Optional[str] = None
    is_active: bool = True
    image_url: Optional[str] = None


class BehaviorEventInput(_CamelModel):
    """Client-supplied part of a behavior event.

    Fields keep whatever JSON value the client sent so the store can reject
    unknown actions and non-string ids with a ``ValidationError`` (400)
    instead of a framework-level 422.
    """

    user_id: Optional[Any] = None
    product_id: Optional[Any] = None
    action: Optional[Any] = None


class BehaviorEvent(_CamelModel):
    """A recorded interaction. Never mutated once written."""

    id: str
    user_id: str
    product_id: Optional[str] = None
    action: Action
    timestamp: datetime


class RecommendationRequest(_CamelModel):
    user_id: str
    cart_product_ids: List[str] = Field(default_factory=list)
    limit: int = Field(default=DEFAULT_LIMIT, ge=1)


class Strategy(str, Enum):
    CART = "cart"
    COLD_START = "cold_start"
    COLLABORATIVE = "collaborative"
    CONTENT = "content"


class RecommendationResult(_CamelModel):
    """Ordered recommendations plus the strategy that produced them."""

    user_id: str
    strategy: Strategy
    products: List[Product] = Field(default_factory=list)

    @property
    def product_ids(self) -> List[str]:
        return [product.id for product in self.products]
