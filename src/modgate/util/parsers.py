"""
Best-effort string matching used for "did you mean" hints.

Nothing here is used for authorization: a fuzzy match only ever feeds a
suggestion into a user-facing message.
"""

from __future__ import annotations

from typing import Iterable, Optional

# Below this similarity a candidate is not worth suggesting
DEFAULT_SIMILARITY_THRESHOLD = 0.4


def edit_distance(s1: str, s2: str) -> int:
    """Case-insensitive Levenshtein distance between two strings."""
    s1 = s1.lower()
    s2 = s2.lower()
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (c1 != c2),
            ))
        previous = current
    return previous[-1]


def string_similarity(s1: str, s2: str) -> float:
    """
    Similarity between 0 and 1 based on edit distance.

    Two empty strings are identical (1.0).
    """
    longer_length = max(len(s1), len(s2))
    if longer_length == 0:
        return 1.0
    return (longer_length - edit_distance(s1, s2)) / longer_length


def closest_match(
    text: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> Optional[str]:
    """
    Return the candidate most similar to ``text``.

    Ties keep the first candidate seen. Returns None when there are no
    candidates or the best similarity is under ``threshold``.
    """
    best: Optional[str] = None
    best_score = -1.0
    for candidate in candidates:
        score = string_similarity(candidate, text)
        if score > best_score:
            best, best_score = candidate, score
    if best is None or best_score < threshold:
        return None
    return best
