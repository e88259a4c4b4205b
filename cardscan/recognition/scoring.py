"""
Heuristic plausibility scoring of recognized text.

The score estimates how much a recognized text looks like the expected
card (a name label, section labels, institution keywords, a registration
number). It is what lets the search choose between noisy recognizer
outputs without ground truth; it says nothing about whether the fields
were read correctly.
"""

import re
from typing import Dict

from cardscan.institution import DEFAULT_PROFILE, InstitutionProfile


def score_breakdown(text: str, profile: InstitutionProfile = DEFAULT_PROFILE) -> Dict[str, int]:
    """
    Points awarded per matching score rule.

    Args:
        text: Raw recognized text
        profile: Institution profile with the score rules

    Returns:
        Mapping of rule pattern to points, for rules that matched
    """
    return {
        pattern: points
        for pattern, points in profile.score_rules
        if re.search(pattern, text)
    }


def score_text(text: str, profile: InstitutionProfile = DEFAULT_PROFILE) -> int:
    """
    Score how card-like a recognized text is.

    Each rule contributes its points at most once.

    Args:
        text: Raw recognized text
        profile: Institution profile with the score rules

    Returns:
        Non-negative integer score
    """
    if not text:
        return 0
    return sum(score_breakdown(text, profile).values())
