"""
Edit distance and normalized string similarity.
"""

from rapidfuzz.distance import Levenshtein


def levenshtein(a: str, b: str) -> int:
    """
    Compute the Levenshtein distance between two strings.

    Mathematical Formulation:
    -------------------------
    D(i, j) = min(D(i-1, j) + 1,                 deletion
                  D(i, j-1) + 1,                 insertion
                  D(i-1, j-1) + [a_i != b_j])    substitution

    with D(i, 0) = i and D(0, j) = j; every operation costs 1.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character edits turning a into b
    """
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """
    Edit-distance similarity: 1 - distance / max(len(a), len(b)).

    Two empty strings are identical (1.0).

    Args:
        a: First string
        b: Second string

    Returns:
        Similarity in [0, 1]
    """
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / max_len
