"""
Field extraction from recognized card text.

Produces the name candidates, the registration identifier and the
institution attribution for one recognized text. Name extraction uses
three independent strategies whose results are unioned:

1. label: a "Name :" label followed by the value up to the next section
2. label-line: a line holding the label and a separator, optionally
   continued on the following line
3. caps-run: runs of two or more upper-case words on lines that cannot
   belong to another section

Strategies run on substitution-repaired text. Identifier and
institution detection run on the unrepaired text, because the repair
would turn the digit run after a letter prefix (``RA1...``) into
letters.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from cardscan.extraction.ocr_cleanup import clean_ocr_text, repair_ocr_substitutions
from cardscan.institution import DEFAULT_PROFILE, InstitutionProfile


logger = logging.getLogger(__name__)

MIN_CANDIDATE_LENGTH = 3

_CAPS_RUN = re.compile(r'[A-Z][A-Z]+(?:\s+[A-Z][A-Z]+)*')


@dataclass(frozen=True)
class NameCandidate:
    """
    A cleaned, upper-cased name read from the card.

    Attributes:
        text: Candidate name
        strategy: Extraction strategy that produced it
    """
    text: str
    strategy: str


@dataclass(frozen=True)
class ExtractedFields:
    """
    Everything field extraction found in one recognized text.

    Attributes:
        name_candidates: Candidates in discovery order, deduplicated
        id_number: Registration identifier, if any
        institution: Institution name if the text votes for the profile
    """
    name_candidates: Tuple[NameCandidate, ...] = field(default_factory=tuple)
    id_number: Optional[str] = None
    institution: Optional[str] = None

    @property
    def best_name(self) -> Optional[str]:
        """First candidate, or None when no name was found."""
        return self.name_candidates[0].text if self.name_candidates else None


def _normalize(candidate: str) -> str:
    return re.sub(r'\s+', ' ', candidate).strip()


def _label_candidates(text: str, profile: InstitutionProfile) -> List[NameCandidate]:
    candidates = []

    for pattern in profile.name_label_patterns:
        match = re.search(pattern, text)
        if match and match.group(1):
            cleaned = clean_ocr_text(match.group(1), profile)
            if len(cleaned) >= MIN_CANDIDATE_LENGTH and re.search(r'[A-Za-z]{2,}', cleaned):
                candidates.append(NameCandidate(cleaned.upper(), "label"))

    return candidates


def _label_line_candidates(lines: List[str], profile: InstitutionProfile) -> List[NameCandidate]:
    candidates = []

    for i, line in enumerate(lines):
        if not (re.search(profile.name_line_pattern, line)
                and re.search(profile.separator_pattern, line)):
            continue

        line_value = None
        after_separator = ' '.join(re.split(profile.separator_pattern, line)[1:]).strip()
        if after_separator:
            cleaned = clean_ocr_text(after_separator, profile)
            if len(cleaned) >= MIN_CANDIDATE_LENGTH:
                line_value = cleaned.upper()
                candidates.append(NameCandidate(line_value, "label-line"))

        # Long names wrap onto the next line
        if i + 1 < len(lines) and not re.search(profile.section_line_pattern, lines[i + 1]):
            cleaned = clean_ocr_text(lines[i + 1], profile)
            if len(cleaned) >= MIN_CANDIDATE_LENGTH and re.fullmatch(r'[A-Za-z\s]+', cleaned):
                if line_value:
                    candidates.append(
                        NameCandidate(f"{line_value} {cleaned.upper()}", "label-line-continuation")
                    )
                candidates.append(NameCandidate(cleaned.upper(), "next-line"))

    return candidates


def _is_non_name_line(line: str, profile: InstitutionProfile) -> bool:
    return any(re.search(pattern, line) for pattern in profile.non_name_patterns)


def _caps_run_candidates(lines: List[str], profile: InstitutionProfile) -> List[NameCandidate]:
    candidates = []

    for line in lines:
        if _is_non_name_line(line, profile):
            continue

        for run in _CAPS_RUN.finditer(line):
            cleaned = clean_ocr_text(run.group(0), profile)
            words = [w for w in cleaned.split(' ') if len(w) >= 2]
            if len(cleaned) >= 4 and len(words) >= 2:
                candidates.append(NameCandidate(cleaned.upper(), "caps-run"))

    return candidates


def extract_name_candidates(
    text: str,
    profile: InstitutionProfile = DEFAULT_PROFILE
) -> List[NameCandidate]:
    """
    Extract all plausible names from recognized text.

    Candidates are upper-cased, contain only letters and spaces, are at
    least three characters long and are unique by whitespace-collapsed
    form; the first occurrence wins.

    Args:
        text: Raw recognized text
        profile: Institution profile with the label patterns

    Returns:
        Candidates in discovery order
    """
    repaired = repair_ocr_substitutions(text)
    lines = [line.strip() for line in repaired.split('\n')]
    lines = [line for line in lines if len(line) > 1]

    found = (
        _label_candidates(repaired, profile)
        + _label_line_candidates(lines, profile)
        + _caps_run_candidates(lines, profile)
    )

    seen = set()
    candidates = []
    for candidate in found:
        normalized = _normalize(candidate.text)
        if len(normalized) < MIN_CANDIDATE_LENGTH or normalized in seen:
            continue
        seen.add(normalized)
        candidates.append(NameCandidate(normalized, candidate.strategy))

    return candidates


def extract_identifier(
    text: str,
    profile: InstitutionProfile = DEFAULT_PROFILE
) -> Optional[str]:
    """
    Extract the registration identifier.

    The profile's identifier patterns are tried in priority order and
    the first match wins.

    Args:
        text: Raw recognized text
        profile: Institution profile with the identifier patterns

    Returns:
        Upper-cased identifier or None
    """
    for pattern in profile.id_patterns:
        match = re.search(pattern, text)
        if match and match.group(1):
            return match.group(1).strip().upper()
    return None


def institution_votes(text: str, profile: InstitutionProfile = DEFAULT_PROFILE) -> int:
    """Count how many of the profile's institution indicators occur in text."""
    return sum(1 for pattern in profile.institution_patterns if re.search(pattern, text))


def is_institution_card(text: str, profile: InstitutionProfile = DEFAULT_PROFILE) -> bool:
    """
    Check whether text plausibly comes from the profile's card format.

    Args:
        text: Raw recognized text
        profile: Institution profile

    Returns:
        True if at least institution_min_votes indicators are present
    """
    return institution_votes(text, profile) >= profile.institution_min_votes


def extract_fields(
    text: str,
    profile: InstitutionProfile = DEFAULT_PROFILE
) -> ExtractedFields:
    """
    Run all field extractors on one recognized text.

    Args:
        text: Raw recognized text
        profile: Institution profile

    Returns:
        ExtractedFields
    """
    candidates = extract_name_candidates(text, profile)
    id_number = extract_identifier(text, profile)
    institution = profile.name if is_institution_card(text, profile) else None

    logger.info(
        f"Extracted {len(candidates)} name candidate(s), "
        f"id={'yes' if id_number else 'no'}, institution={institution or 'unknown'}"
    )
    for candidate in candidates:
        logger.debug(f"  candidate [{candidate.strategy}]: {candidate.text}")

    return ExtractedFields(
        name_candidates=tuple(candidates),
        id_number=id_number,
        institution=institution,
    )
