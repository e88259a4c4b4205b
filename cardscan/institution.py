"""
Institution card profiles.

A profile collects everything that is specific to one institution's
card layout: the label and keyword patterns used to score recognized
text, the identifier shapes, the watermark fragments to strip from
names, and the lines that can never hold a name. Scoring and field
extraction are written against a profile, so supporting another card
format is a configuration change.

All patterns are Python regular expressions. Case-insensitive patterns
carry an inline ``(?i)`` flag; the rest are case-sensitive on purpose
(e.g. upper-case runs of a printed name).
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class InstitutionProfile:
    """
    Card layout knowledge for one institution.

    Attributes:
        name: Institution name reported for recognized cards
        score_rules: (pattern, points) pairs summed into the plausibility score
        name_label_patterns: Label patterns whose first group is the name
        name_line_pattern: Marks a line that carries the name label
        separator_pattern: Separator between a label and its value
        section_line_pattern: Marks a line belonging to another section
        watermark_patterns: OCR readings of the watermark to strip from names
        noise_patterns: Institution-name fragments that bleed into names
        non_name_patterns: Lines matching any of these never hold a name
        id_patterns: Identifier patterns in priority order, group 1 is the id
        institution_patterns: Indicators voting for this institution
        institution_min_votes: Votes needed to attribute a card
    """
    name: str = "SRM Institute of Science and Technology"
    score_rules: Tuple[Tuple[str, int], ...] = (
        (r'(?i)name\s*[:;.]', 50),
        (r'(?i)programme', 20),
        (r'(?i)register', 20),
        (r'(?i)srm', 10),
        (r'(?i)faculty', 10),
        (r'(?i)engineering', 10),
        (r'(?i)b\.?\s*tech', 15),
        (r'(?i)ra\d{6,}', 25),
        (r'(?i)kattankulathur', 10),
        (r'(?i)valid', 5),
        (r'(?i)student', 5),
    )
    name_label_patterns: Tuple[str, ...] = (
        r'(?i)[n][ae]m[ec]?\s*[:;.]\s*[:;.]?\s*(.+?)'
        r'(?=\s*\n|\s*Programme|\s*Program|\s*Register|\s*Valid|\s*$)',
        r'(?i)[n][ae]m[ec]?\s*[:;.]\s*(.+)',
        r'[Nn]ame\s+([A-Z][A-Z\s]{3,})',
    )
    name_line_pattern: str = r'(?i)name'
    separator_pattern: str = r'[:;.]'
    section_line_pattern: str = r'(?i)programme|program|register|valid|faculty|b\.?tech'
    watermark_patterns: Tuple[str, ...] = (
        r'(?i)\b[OoC]?SRM\b',
        r'(?i)\bSR[MNW]\b',
        r'(?i)\bOS[RM][MW]?\b',
        r'(?i)\bCSR[MW]?\b',
    )
    noise_patterns: Tuple[str, ...] = (
        r'(?i)institute\s*(?:of)?',
        r'(?i)science',
        r'(?i)technology',
    )
    non_name_patterns: Tuple[str, ...] = (
        r'(?i)programme|register|valid|faculty|engineering|technology|campus'
        r'|kattankulathur|chengalp|student|website|email|phone|b\.?tech'
        r'|\bcse\b|\bmech\b|\bcivil\b|\beee\b|\bece\b',
        r'(?i)RA\d{4,}',
        r'\d{4,}',
        r'(?i)\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)\b',
        r'(?i)\b(?:january|february|march|april|june|july|august|september'
        r'|october|november|december)\b',
        r'\b\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}\b',
        r'(?i)www\.|\.com|\.in\b|\.edu',
        r'(?i)044-|ph\s*:',
    )
    id_patterns: Tuple[str, ...] = (
        r'(?i)(?:Register|Reg)\s*(?:No)?\.?\s*[:;.]\s*(RA\d{6,})',
        r'(?i)(RA\d{10,})',
        r'(?i)(RA\d{8,})',
        r'(?i)([A-Z]{2}\d{10,})',
    )
    institution_patterns: Tuple[str, ...] = (
        r'(?i)srm',
        r'(?i)faculty',
        r'(?i)engineering',
        r'(?i)kattankulathur',
        r'(?i)programme',
        r'(?i)ra\d{6,}',
        r'(?i)b\.tech|btech',
    )
    institution_min_votes: int = 2

    @classmethod
    def from_dict(
        cls,
        overrides: Dict[str, Any],
        base: Optional["InstitutionProfile"] = None
    ) -> "InstitutionProfile":
        """
        Create a profile by overriding fields of a base profile.

        Sequences from YAML arrive as lists and are converted to tuples.
        score_rules may be given as a mapping of pattern to points or as
        a list of [pattern, points] pairs.

        Args:
            overrides: Field values to replace
            base: Profile to start from, DEFAULT_PROFILE if None

        Returns:
            New InstitutionProfile

        Raises:
            KeyError: If an override names an unknown field
        """
        base = base or DEFAULT_PROFILE
        known = {f.name for f in fields(cls)}

        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                raise KeyError(f"Unknown institution profile field: {key}")

            if key == 'score_rules':
                items = value.items() if isinstance(value, dict) else value
                value = tuple((str(pattern), int(points)) for pattern, points in items)
            elif isinstance(value, list):
                value = tuple(value)

            changes[key] = value

        return replace(base, **changes)


# The card format the default thresholds were tuned against
DEFAULT_PROFILE = InstitutionProfile()
