"""Stock reconciliation and price analytics."""

from .classifier import ListingClassifier
from .leaderboard import leaderboard
from .name_matcher import jaccard_similarity, matches
from .price_tracker import PriceTracker
from .reconciliation import ListingSource, ReconciliationEngine

__all__ = [
    "ListingClassifier",
    "ListingSource",
    "PriceTracker",
    "ReconciliationEngine",
    "jaccard_similarity",
    "leaderboard",
    "matches",
]
