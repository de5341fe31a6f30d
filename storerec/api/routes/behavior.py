"""Behavior tracking endpoint.

Storefront clients post one event per product view, cart addition or
purchase. Events are stamped with the server clock.
"""

import logging

from fastapi import APIRouter, Depends

from storerec.api.dependencies import get_store
from storerec.api.metrics import metrics_service
from storerec.recommender.models import BehaviorEvent, BehaviorEventInput
from storerec.recommender.storage import BehaviorLog

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/behavior",
    tags=["behavior"],
)


@router.post("", response_model=BehaviorEvent)
def track_behavior(
    event_input: BehaviorEventInput,
    behavior_log: BehaviorLog = Depends(get_store),
) -> BehaviorEvent:
    """Record a behavior event.

    Body: ``{"userId": ..., "productId": ..., "action": "view"}``.

    Raises:
        ValidationError: If the action is unknown or userId missing (400).
    """
    event = behavior_log.record(event_input)
    metrics_service.record_event()
    logger.info(
        "Behavior tracked",
        extra={"user_id": event.user_id, "product_id": event.product_id, "action": event.action.value},
    )
    return event
