"""StoreRec: behavior-driven product recommendations for a storefront.

This package tracks shopper behavior (views, cart additions, purchases) and
turns it into ranked, category-diverse product recommendations.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: behavior log, scoring, diversity and strategy selection
"""

__version__ = "0.1.0"
