"""Fuzzy comparison of listing titles against configured doctrine names."""

from __future__ import annotations

from collections import Counter

from ..config import constants


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[idx : idx + 2] for idx in range(len(text) - 1))


def jaccard_similarity(left: str, right: str) -> float:
    """Case-insensitive Jaccard index over character bigram multisets."""

    a = left.lower()
    b = right.lower()
    if not a and not b:
        return 1.0
    grams_a = _bigrams(a)
    grams_b = _bigrams(b)
    total = sum(grams_a.values()) + sum(grams_b.values())
    if total == 0:
        return 0.0
    common = sum((grams_a & grams_b).values())
    return common / (total - common)


def matches(
    required: str,
    candidate: str,
    threshold: float = constants.NAME_SIMILARITY_THRESHOLD,
) -> bool:
    """Return True when ``candidate`` names the doctrine ``required``.

    Every whitespace token of ``required`` found in ``candidate`` (in any
    order, case-insensitive) is an immediate match, which tolerates reordered
    words and trailing suffixes. Otherwise the bigram similarity of the two
    full strings must reach ``threshold`` so punctuation variants such as
    ``"(3 Gyro)"`` still match ``"3 Gyro"``.
    """

    required_tokens = [token.lower() for token in required.split()]
    if not required_tokens:
        return False
    candidate_tokens = {token.lower() for token in candidate.split()}
    found = sum(1 for token in required_tokens if token in candidate_tokens)
    if found == len(required_tokens):
        return True
    return jaccard_similarity(required, candidate) >= threshold


__all__ = ["jaccard_similarity", "matches"]
