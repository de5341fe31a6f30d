"""User similarity over interacted-product sets.

Similarity between two users is the Jaccard index of the sets of products
they interacted with. Neighbor search builds a binary user x product sparse
matrix so intersections for every user come from one matrix-vector product.
"""

import logging
from typing import AbstractSet, Dict, Iterable, List, Set, Tuple

import numpy as np
from scipy.sparse import csr_matrix

from storerec.recommender.models import BehaviorEvent

# Configure module logger
logger = logging.getLogger(__name__)


def jaccard_similarity(behavior_a: AbstractSet[str], behavior_b: AbstractSet[str]) -> float:
    """Jaccard index |A & B| / |A | B|, defined as 0.0 for two empty sets.

    Example:
        >>> jaccard_similarity({"p1", "p2"}, {"p2", "p3"})
        0.3333333333333333
    """
    union = len(behavior_a | behavior_b)
    if union == 0:
        return 0.0
    return len(behavior_a & behavior_b) / union


def interaction_sets(events: Iterable[BehaviorEvent]) -> Dict[str, Set[str]]:
    """Group interacted product ids by user, in order of first appearance.

    Events without a product id are skipped.
    """
    sets: Dict[str, Set[str]] = {}
    for event in events:
        if not event.product_id:
            continue
        sets.setdefault(event.user_id, set()).add(event.product_id)
    return sets


def build_interaction_matrix(
    user_products: Dict[str, Set[str]],
) -> Tuple[csr_matrix, List[str], Dict[str, int]]:
    """Build a binary sparse user x product matrix.

    Returns:
        A tuple containing:
            - CSR matrix of shape (n_users, n_products) with 1 per interaction
            - User ids in row order
            - Mapping from product id to column index
    """
    user_ids = list(user_products)
    product_id_to_idx: Dict[str, int] = {}
    rows: List[int] = []
    cols: List[int] = []
    for row, user_id in enumerate(user_ids):
        for product_id in user_products[user_id]:
            col = product_id_to_idx.setdefault(product_id, len(product_id_to_idx))
            rows.append(row)
            cols.append(col)

    matrix = csr_matrix(
        (np.ones(len(rows), dtype=np.float64), (rows, cols)),
        shape=(len(user_ids), len(product_id_to_idx)),
        dtype=np.float64,
    )
    return matrix, user_ids, product_id_to_idx


def find_neighbors(
    user_id: str,
    events: Iterable[BehaviorEvent],
    max_neighbors: int,
) -> List[Tuple[str, float]]:
    """Find users sharing at least one interacted product with ``user_id``.

    Args:
        user_id: Target user.
        events: Behavior log snapshot.
        max_neighbors: Cutoff on the number of neighbors returned.

    Returns:
        ``(neighbor_id, similarity)`` pairs with similarity > 0, sorted by
        similarity descending; ties keep first-appearance order in the log.
    """
    user_products = interaction_sets(events)
    target = user_products.get(user_id)
    if not target or max_neighbors == 0:
        return []

    matrix, user_ids, product_id_to_idx = build_interaction_matrix(user_products)

    target_vector = np.zeros(len(product_id_to_idx), dtype=np.float64)
    target_vector[[product_id_to_idx[pid] for pid in target]] = 1.0

    intersections = np.asarray(matrix @ target_vector).ravel()
    row_sizes = np.asarray(matrix.sum(axis=1)).ravel()
    unions = row_sizes + len(target) - intersections

    neighbors = [
        (other_id, float(intersections[row] / unions[row]))
        for row, other_id in enumerate(user_ids)
        if other_id != user_id and intersections[row] > 0
    ]
    neighbors.sort(key=lambda pair: pair[1], reverse=True)

    if len(neighbors) > max_neighbors:
        logger.debug(
            "Neighbor cutoff applied",
            extra={"user_id": user_id, "found": len(neighbors), "kept": max_neighbors},
        )
    return neighbors[:max_neighbors]
