"""
Normalised edit-distance similarity — the primitive every scorer builds on.
"""
from __future__ import annotations


def edit_distance(a: str, b: str) -> int:
    """Unit-cost Levenshtein distance (insert / delete / substitute)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    (max_len - distance) / max_len, in [0, 1].

    Both empty → 1.0; exactly one empty → 0.0. Symmetric in a, b.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    if not a or not b:
        return 0.0
    return (longest - edit_distance(a, b)) / longest
