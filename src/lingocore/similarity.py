"""Edit-distance string similarity used for "almost correct" feedback."""

from __future__ import annotations


def levenshtein_distance(left: str, right: str) -> int:
    """Return edit distance with unit insertion, deletion and substitution costs."""
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i] + [0] * len(right)
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[len(right)]


def similarity(left: str, right: str) -> float:
    """Return normalized similarity in [0.0, 1.0] for two answers.

    Both sides are lower-cased and trimmed first. Equal strings (including two
    empty ones) score 1.0; one empty side scores 0.0.
    """
    a = left.lower().strip()
    b = right.lower().strip()
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    distance = levenshtein_distance(a, b)
    score = 1.0 - distance / max(len(a), len(b))
    return min(1.0, max(0.0, score))
