"""
Fuzzy matching of a profile name against a name read from a card.

OCR output is noisy in ways a single global threshold handles badly:
surnames get garbled, words get truncated, middle names appear or
disappear. Four signals are therefore computed and the strongest one
wins:

1. Full-string similarity   1 - lev(a, b) / max(|a|, |b|)
2. Word alignment           greedy best-unused-word pairing, prefix
                            matches boosted to 0.85, pair matched at
                            >= 0.6; matched / max(word counts), x 0.95
3. First name               profile's first word against every card
                            word; >= 0.75 contributes max(0.80, 0.9 s)
4. Containment              either string (or any profile word of 3+
                            letters and a card word) contains the other;
                            contributes 0.85

The match decision accepts any of several independent low bars: the
combined similarity >= 0.60, a strong first name plus one matched word,
two matched words, or containment.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from cardscan.verification.edit_distance import similarity


MATCH_THRESHOLD = 0.60
WORD_MATCH_THRESHOLD = 0.6
PREFIX_SIMILARITY = 0.85
WORD_SCORE_WEIGHT = 0.95
FIRST_NAME_GATE = 0.75
FIRST_NAME_FLOOR = 0.80
FIRST_NAME_WEIGHT = 0.9
FIRST_NAME_DECISION = 0.70
CONTAINMENT_SCORE = 0.85


@dataclass(frozen=True)
class MatchResult:
    """
    Result of comparing a profile name with a card name.

    Attributes:
        is_match: Whether the names are judged to be the same person
        similarity: Combined similarity in [0, 1]
        candidate: Card name the result was computed against
        details: Individual signal values
    """
    is_match: bool
    similarity: float
    candidate: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_match": self.is_match,
            "similarity": self.similarity,
            "candidate": self.candidate,
            "details": dict(self.details),
        }


def normalize_name(name: str) -> str:
    """Lower-case, keep letters and spaces only, collapse whitespace."""
    name = re.sub(r'[^a-z\s]', '', name.lower())
    return re.sub(r'\s+', ' ', name).strip()


def word_similarity(a: str, b: str) -> float:
    """
    Similarity of two words, tolerant to truncation.

    When one word is a prefix of the other the similarity is at least
    PREFIX_SIMILARITY.

    Args:
        a: First word
        b: Second word

    Returns:
        Similarity in [0, 1]
    """
    sim = similarity(a, b)
    if a.startswith(b) or b.startswith(a):
        return max(sim, PREFIX_SIMILARITY)
    return sim


def _count_word_matches(profile_words: List[str], card_words: List[str]) -> int:
    used = set()
    matched = 0

    for pw in profile_words:
        best_sim = 0.0
        best_idx = -1
        for j, cw in enumerate(card_words):
            if j in used:
                continue
            sim = word_similarity(pw, cw)
            if sim > best_sim:
                best_sim = sim
                best_idx = j

        if best_idx >= 0 and best_sim >= WORD_MATCH_THRESHOLD:
            matched += 1
            used.add(best_idx)

    return matched


def _first_name_similarity(profile_words: List[str], card_words: List[str]) -> float:
    first = profile_words[0] if profile_words else ''
    if len(first) < 3:
        return 0.0
    return max((word_similarity(first, cw) for cw in card_words), default=0.0)


def _contains(a: str, b: str, profile_words: List[str], card_words: List[str]) -> bool:
    if a in b or b in a:
        return True
    return any(
        len(pw) >= 3 and any(pw in cw or cw in pw for cw in card_words)
        for pw in profile_words
    )


def fuzzy_name_match(profile_name: str, card_name: str) -> MatchResult:
    """
    Compare a profile name with a name read from a card.

    Args:
        profile_name: Reference name supplied by the user profile
        card_name: Name extracted from the card

    Returns:
        MatchResult; empty names after normalization never match
    """
    a = normalize_name(profile_name)
    b = normalize_name(card_name)

    if not a or not b:
        return MatchResult(is_match=False, similarity=0.0, candidate=card_name)
    if a == b:
        return MatchResult(is_match=True, similarity=1.0, candidate=card_name,
                           details={"exact": True})

    full_similarity = similarity(a, b)

    a_words = [w for w in a.split(' ') if len(w) >= 2]
    b_words = [w for w in b.split(' ') if len(w) >= 2]

    matched_words = _count_word_matches(a_words, b_words)
    total_words = max(len(a_words), len(b_words))
    word_score = matched_words / total_words if total_words > 0 else 0.0

    first_name_similarity = _first_name_similarity(a_words, b_words)
    containment = _contains(a, b, a_words, b_words)

    combined = max(
        full_similarity,
        word_score * WORD_SCORE_WEIGHT,
        max(FIRST_NAME_FLOOR, first_name_similarity * FIRST_NAME_WEIGHT)
        if first_name_similarity >= FIRST_NAME_GATE else 0.0,
        CONTAINMENT_SCORE if containment else 0.0,
    )

    is_match = (
        combined >= MATCH_THRESHOLD
        or (first_name_similarity >= FIRST_NAME_DECISION and matched_words >= 1)
        or matched_words >= 2
        or containment
    )

    return MatchResult(
        is_match=is_match,
        similarity=min(combined, 1.0),
        candidate=card_name,
        details={
            "full_similarity": full_similarity,
            "word_similarity": word_score,
            "matched_words": matched_words,
            "first_name_similarity": first_name_similarity,
            "containment": containment,
        },
    )


def best_candidate_match(profile_name: str, candidates: Sequence[str]) -> MatchResult:
    """
    Match a profile name against several card name candidates.

    Args:
        profile_name: Reference name
        candidates: Card name candidates in priority order

    Returns:
        The highest-similarity result; ties keep the earlier candidate.
        No candidates gives a non-match with similarity 0.
    """
    best: Optional[MatchResult] = None
    for candidate in candidates:
        result = fuzzy_name_match(profile_name, candidate)
        if best is None or result.similarity > best.similarity:
            best = result

    if best is None:
        return MatchResult(is_match=False, similarity=0.0)
    return best
