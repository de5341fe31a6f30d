"""CLI script for getting product recommendations.

Useful for testing and evaluation. Loads a data directory, gets
recommendations (or the popular list) and prints them to the console.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from storerec.api.exceptions import StoreRecException
from storerec.recommender.config import RecommenderConfig
from storerec.recommender.engine import RecommendationEngine
from storerec.recommender.models import Product, RecommendationRequest
from storerec.recommender.ranker import rank_content_based
from storerec.recommender.storage import load_store_from_dir

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def _format_product(product: Product) -> str:
    return (
        f"{product.id:<20} {product.category_id or '-':<14} "
        f"{product.price:>9} rating={product.rating or '-'}"
    )


def print_products(title: str, products: List[Product]) -> None:
    print(f"\n{title}")
    for position, product in enumerate(products, start=1):
        print(f"  {position:>2}. {_format_product(product)}")
    if not products:
        print("  (none)")


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend_cli.py guest-123
  python scripts/recommend_cli.py guest-123 --limit 4 --cart books-1
  python scripts/recommend_cli.py --popular
  python scripts/recommend_cli.py user-1 --explain --seed 7
        """
    )

    parser.add_argument("user_id", nargs="?", help="User or guest id to recommend for")
    parser.add_argument("--data-dir", type=str, default="data", help="Directory with products.csv and behavior.csv (default: data)")
    parser.add_argument("--limit", type=int, default=6, help="Number of recommendations (default: 6)")
    parser.add_argument("--cart", action="append", default=[], help="Product id in the current cart (repeatable)")
    parser.add_argument("--popular", action="store_true", help="Show popular products instead")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible results")
    parser.add_argument("--explain", action="store_true", help="Show content score breakdown for the results")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    if not args.popular and not args.user_id:
        parser.error("user_id is required unless --popular is given")

    try:
        store = load_store_from_dir(args.data_dir)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    engine = RecommendationEngine(store, store, config=RecommenderConfig(seed=args.seed))

    try:
        if args.popular:
            print_products(f"Popular products (top {args.limit}):", engine.popular(args.limit))
            return

        result = engine.recommend(
            RecommendationRequest(user_id=args.user_id, cart_product_ids=args.cart, limit=args.limit)
        )
    except StoreRecException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print_products(
        f"Recommendations for {args.user_id} (strategy: {result.strategy.value}):",
        result.products,
    )

    if args.explain:
        history = [
            product
            for product in (store.get_product(e.product_id) for e in store.list_by_user(args.user_id) if e.product_id)
            if product is not None
        ]
        print("\nContent score breakdown:")
        for item in rank_content_based(history, result.products):
            parts = ", ".join(f"{name}={value:.2f}" for name, value in item.components.items())
            print(f"  {item.product.id:<20} {parts}")

    print()


if __name__ == "__main__":
    main()
