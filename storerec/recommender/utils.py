"""Utility functions for the recommendation system.

This module provides helpers for parsing the catalog's loosely typed numeric
fields and for loading catalog and behavior snapshots from CSV files.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from storerec.recommender.models import Action, BehaviorEvent, Product

# Configure module logger
logger = logging.getLogger(__name__)

# Snapshot filenames inside a data directory
PRODUCTS_FILENAME = "products.csv"
BEHAVIOR_FILENAME = "behavior.csv"

# Separator for the tags column
TAG_SEPARATOR = "|"

PRODUCT_COLUMNS = {"id", "category_id", "price"}
BEHAVIOR_COLUMNS = {"user_id", "product_id", "action", "timestamp"}

_TRUE_VALUES = {"true", "1", "yes", "y", "t"}


def parse_decimal(value: Optional[object]) -> Optional[float]:
    """Parse a decimal string (or number) into a float.

    Args:
        value: Raw value from a product record.

    Returns:
        The parsed finite float, or None when the value is missing or
        unparseable.

    Example:
        >>> parse_decimal("19.99")
        19.99
        >>> parse_decimal("n/a") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    if not np.isfinite(parsed):
        return None
    return parsed


def _parse_tags(raw: str) -> Optional[List[str]]:
    if not raw:
        return None
    return [tag.strip() for tag in raw.split(TAG_SEPARATOR) if tag.strip()]


def _require_columns(df: pd.DataFrame, required: set, csv_path: str) -> None:
    if not required.issubset(df.columns):
        missing = required - set(df.columns)
        raise ValueError(f"CSV {csv_path} missing required columns: {missing}")


def load_products_csv(csv_path: str) -> List[Product]:
    """Load a product catalog from CSV.

    Every column is read as text so prices and ratings keep their decimal
    string form. Optional columns: name, description, tags (``|`` separated),
    rating, is_active (defaults to true), image_url.

    Args:
        csv_path: Path to the products CSV file.

    Returns:
        Products in file order.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If required columns are missing.
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading products from {csv_path}")
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    _require_columns(df, PRODUCT_COLUMNS, csv_path)

    products = []
    for row in df.to_dict(orient="records"):
        is_active_raw = row.get("is_active", "")
        products.append(
            Product(
                id=row["id"],
                name=row.get("name", ""),
                description=row.get("description", ""),
                category_id=row["category_id"] or None,
                price=row["price"] or "0",
                tags=_parse_tags(row.get("tags", "")),
                rating=row.get("rating") or None,
                is_active=(
                    True if is_active_raw == "" else is_active_raw.strip().lower() in _TRUE_VALUES
                ),
                image_url=row.get("image_url") or None,
            )
        )

    logger.info(f"Loaded {len(products)} products")
    return products


def load_behavior_csv(csv_path: str) -> List[BehaviorEvent]:
    """Load a historical behavior log from CSV.

    Rows with an unknown action or no user id are skipped with a warning;
    an ``id`` column is optional and generated when absent.

    Args:
        csv_path: Path to the behavior CSV file.

    Returns:
        Events sorted by timestamp.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
        ValueError: If required columns are missing.
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading behavior log from {csv_path}")
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    _require_columns(df, BEHAVIOR_COLUMNS, csv_path)

    if df.empty:
        return []

    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)

    allowed_actions = {action.value for action in Action}
    events = []
    skipped = 0
    for row in df.to_dict(orient="records"):
        if row["action"] not in allowed_actions or not row["user_id"]:
            skipped += 1
            continue
        events.append(
            BehaviorEvent(
                id=row.get("id") or str(uuid.uuid4()),
                user_id=row["user_id"],
                product_id=row["product_id"] or None,
                action=Action(row["action"]),
                timestamp=row["timestamp"].to_pydatetime(),
            )
        )

    if skipped:
        logger.warning(f"Skipped {skipped} malformed behavior rows in {csv_path}")
    logger.info(f"Loaded {len(events)} behavior events")
    return events


def get_data_paths(data_dir: str) -> Tuple[Path, Path]:
    """Get file paths for the catalog and behavior snapshots."""
    data_path = Path(data_dir)
    return data_path / PRODUCTS_FILENAME, data_path / BEHAVIOR_FILENAME


def check_data_exists(data_dir: str) -> bool:
    """Check if a data directory holds a products snapshot.

    The behavior snapshot is optional; a fresh storefront has none.
    """
    products_path, _ = get_data_paths(data_dir)
    return products_path.exists()
