"""Near-match scoring for "did you mean" hints.

A name is similar to a query when either contains the other
(case-insensitive) or their Levenshtein distance is within a threshold.
"""

from __future__ import annotations

from typing import Iterable

DEFAULT_MAX_DISTANCE = 2


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning a into b."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def is_similar(name: str, query: str, max_distance: int = DEFAULT_MAX_DISTANCE) -> bool:
    lower_name = name.lower()
    lower_query = query.lower()
    if lower_query in lower_name or lower_name in lower_query:
        return True
    return levenshtein_distance(lower_name, lower_query) <= max_distance


def suggest(
    names: Iterable[str],
    query: str,
    max_distance: int = DEFAULT_MAX_DISTANCE,
) -> list[str]:
    """Return the names similar to query, preserving input order."""
    return [name for name in names if is_similar(name, query, max_distance)]
