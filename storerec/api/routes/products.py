"""Catalog endpoints: filtered listing, popular products and lookup."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from storerec.api.dependencies import get_engine, get_store
from storerec.api.exceptions import ProductNotFoundError
from storerec.recommender.engine import RecommendationEngine
from storerec.recommender.models import Product
from storerec.recommender.storage import Catalog

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/products",
    tags=["products"],
)

MAX_POPULAR_LIMIT = 50


@router.get("", response_model=List[Product])
def list_products(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    catalog: Catalog = Depends(get_store),
) -> List[Product]:
    """List active products, optionally filtered by category, text and price."""
    return catalog.list_products(
        category_id=category_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
    )


@router.get("/popular", response_model=List[Product])
def get_popular_products(
    limit: Optional[int] = Query(None, ge=1, le=MAX_POPULAR_LIMIT),
    engine: RecommendationEngine = Depends(get_engine),
) -> List[Product]:
    """Products ranked by weighted views, cart additions and purchases.

    Falls back to a random sample of active products when no behavior has
    been recorded yet.
    """
    products = engine.popular(limit)
    logger.debug(f"Serving {len(products)} popular products")
    return products


@router.get("/{product_id}", response_model=Product)
def get_product(product_id: str, catalog: Catalog = Depends(get_store)) -> Product:
    """Get one product by id.

    Raises:
        ProductNotFoundError: If the id is unknown (404).
    """
    product = catalog.get_product(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product
