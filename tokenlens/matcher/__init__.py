from tokenlens.matcher.alignment import (
    Alignment,
    HierarchicalPairing,
    greedy_child_alignment,
    pair_hierarchically,
)
from tokenlens.matcher.signals import MatchContext, Similarity, similarity

__all__ = [
    "Alignment",
    "HierarchicalPairing",
    "MatchContext",
    "Similarity",
    "greedy_child_alignment",
    "pair_hierarchically",
    "similarity",
]
