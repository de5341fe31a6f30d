"""Recommendation endpoints for the StoreRec API.

This module serves personalized recommendations for a user id, which may
belong to a registered account or to a guest session.
"""

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from storerec.api.dependencies import get_engine
from storerec.api.exceptions import StoreRecException
from storerec.api.metrics import metrics_service
from storerec.recommender.engine import RecommendationEngine
from storerec.recommender.models import DEFAULT_LIMIT, Product, RecommendationRequest

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommendations",
    tags=["recommendations"],
)

MAX_LIMIT = 50
STRATEGY_HEADER = "X-Recommendation-Strategy"


@router.get("/{user_id}", response_model=List[Product])
def get_recommendations(
    user_id: str,
    response: Response,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    cart: List[str] = Query(default=[], description="Product ids currently in the cart"),
    engine: RecommendationEngine = Depends(get_engine),
) -> List[Product]:
    """Get product recommendations for a user.

    Args:
        user_id: User or guest id to recommend for.
        response: Outgoing response, used to expose the chosen strategy.
        limit: Number of recommendations to return (default: 6).
        cart: Product ids in the user's current cart; never recommended.
        engine: Recommendation engine over the process store.

    Returns:
        Up to ``limit`` distinct active products.

    Raises:
        DataUnavailable: If the store cannot be read (503).

    Example:
        GET /recommendations/guest-123?limit=4&cart=p1&cart=p2
    """
    start_time = time.perf_counter()
    request = RecommendationRequest(user_id=user_id, cart_product_ids=cart, limit=limit)

    try:
        result = engine.recommend(request)
    except StoreRecException:
        raise
    except Exception as e:
        logger.error(
            f"Error generating recommendations for user {user_id}: {e}",
            exc_info=True,
        )
        raise StoreRecException(
            message=f"Failed to generate recommendations: {str(e)}",
            details={"user_id": user_id, "error_type": type(e).__name__},
        )

    latency_ms = (time.perf_counter() - start_time) * 1000
    metrics_service.record_recommendation(
        strategy=result.strategy.value,
        latency_ms=latency_ms,
        over_budget=latency_ms > engine.config.time_budget_ms,
    )
    response.headers[STRATEGY_HEADER] = result.strategy.value
    return result.products
