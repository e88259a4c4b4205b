"""
Fuzzy verification of extracted names against profile names.
"""

from .edit_distance import (
    levenshtein,
    similarity
)
from .name_matching import (
    MatchResult,
    normalize_name,
    word_similarity,
    fuzzy_name_match,
    best_candidate_match
)

__all__ = [
    'levenshtein',
    'similarity',
    'MatchResult',
    'normalize_name',
    'word_similarity',
    'fuzzy_name_match',
    'best_candidate_match',
]
