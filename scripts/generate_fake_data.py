"""Generate a fake catalog and behavior log for testing and development.

Writes ``products.csv`` and ``behavior.csv`` in the layout the API loads from
``STOREREC_DATA_DIR``. Each simulated shopper interacts with 15-25 random
products, one to three times each, over the last 30 days.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        products = generate_fake_catalog(products_per_category=5)
"""

import argparse
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

# Default configuration constants
DEFAULT_CATEGORIES = ["electronics", "books", "fashion", "home-garden"]
DEFAULT_PRODUCTS_PER_CATEGORY = 8
DEFAULT_USER_IDS = ["admin", "guest-123", "guest-456", "guest", "user-1", "user-2", "user-3"]
DEFAULT_DAYS_BACK = 30
DEFAULT_SEED = 42
MIN_PRODUCTS_PER_USER = 15
MAX_PRODUCTS_PER_USER = 25
MAX_INTERACTIONS_PER_PRODUCT = 3
SECONDS_PER_DAY = 86400

TAG_POOL = ["new", "sale", "bestseller", "eco", "premium", "gift", "classic", "limited"]


def generate_fake_catalog(
    categories: Optional[List[str]] = None,
    products_per_category: int = DEFAULT_PRODUCTS_PER_CATEGORY,
    random_seed: int = DEFAULT_SEED,
) -> pd.DataFrame:
    """Generate a synthetic product catalog.

    Args:
        categories: Category ids to populate (default: four storefront
            categories).
        products_per_category: Products per category. Must be positive.
        random_seed: Random seed for reproducibility.

    Returns:
        A DataFrame with columns id, name, description, category_id, price,
        tags (``|`` separated), rating and is_active. Roughly one product in
        twenty is inactive.

    Raises:
        ValueError: If products_per_category is not positive.
    """
    if products_per_category <= 0:
        raise ValueError("products_per_category must be positive")

    categories = categories or DEFAULT_CATEGORIES
    rng = np.random.default_rng(random_seed)

    rows = []
    for category_id in categories:
        for index in range(products_per_category):
            tags = rng.choice(TAG_POOL, size=int(rng.integers(1, 4)), replace=False)
            rows.append({
                "id": f"{category_id}-{index + 1}",
                "name": f"{category_id.replace('-', ' ').title()} item {index + 1}",
                "description": f"A {' '.join(tags)} product from {category_id}",
                "category_id": category_id,
                "price": f"{rng.uniform(5, 500):.2f}",
                "tags": "|".join(tags),
                "rating": f"{rng.uniform(2.5, 5.0):.1f}",
                "is_active": bool(rng.random() >= 0.05),
            })

    return pd.DataFrame(rows)


def _random_action(rng: np.random.Generator) -> str:
    if rng.random() < 0.4:
        return "view"
    return "add_to_cart" if rng.random() < 0.7 else "purchase"


def generate_fake_behavior(
    product_ids: List[str],
    user_ids: Optional[List[str]] = None,
    days_back: int = DEFAULT_DAYS_BACK,
    end_date: Optional[datetime] = None,
    random_seed: int = DEFAULT_SEED,
) -> pd.DataFrame:
    """Generate a synthetic behavior log.

    Args:
        product_ids: Products shoppers can interact with.
        user_ids: Shopper ids (default: a mix of accounts and guests).
        days_back: Spread of timestamps before ``end_date``. Must be positive.
        end_date: Latest timestamp (default: now, UTC).
        random_seed: Random seed for reproducibility.

    Returns:
        A DataFrame with columns id, user_id, product_id, action and
        timestamp, sorted by timestamp.

    Raises:
        ValueError: If product_ids is empty or days_back is not positive.
    """
    if not product_ids:
        raise ValueError("product_ids must not be empty")
    if days_back <= 0:
        raise ValueError("days_back must be positive")

    user_ids = user_ids or DEFAULT_USER_IDS
    end_date = end_date or datetime.now(timezone.utc)
    rng = np.random.default_rng(random_seed)

    events = []
    for user_id in user_ids:
        count = int(rng.integers(MIN_PRODUCTS_PER_USER, MAX_PRODUCTS_PER_USER + 1))
        chosen = rng.permutation(product_ids)[:count]
        for product_id in chosen:
            for _ in range(int(rng.integers(1, MAX_INTERACTIONS_PER_PRODUCT + 1))):
                offset = timedelta(seconds=int(rng.integers(days_back * SECONDS_PER_DAY)))
                events.append({
                    "id": str(uuid.uuid4()),
                    "user_id": user_id,
                    "product_id": str(product_id),
                    "action": _random_action(rng),
                    "timestamp": (end_date - offset).isoformat(),
                })

    df = pd.DataFrame(events)
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df


def main() -> None:
    """Generate default data and save it to a data directory."""
    parser = argparse.ArgumentParser(description="Generate a fake catalog and behavior log.")
    parser.add_argument("--output-dir", type=str, default=str(Path(__file__).parent.parent / "data"))
    parser.add_argument("--products-per-category", type=int, default=DEFAULT_PRODUCTS_PER_CATEGORY)
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    args = parser.parse_args()

    try:
        products = generate_fake_catalog(
            products_per_category=args.products_per_category,
            random_seed=args.seed,
        )
        behavior = generate_fake_behavior(products["id"].tolist(), random_seed=args.seed)
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(args.output_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    products.to_csv(data_dir / "products.csv", index=False)
    behavior.to_csv(data_dir / "behavior.csv", index=False)

    print(f"\nData generated successfully!")
    print(f"Saved to: {data_dir}")
    print(f"\nData summary:")
    print(f"  Products: {len(products)} ({int(products['is_active'].sum())} active)")
    print(f"  Events: {len(behavior)}")
    print(f"  Unique users: {behavior['user_id'].nunique()}")
    print(f"  Actions: {behavior['action'].value_counts().to_dict()}")


if __name__ == "__main__":
    main()
