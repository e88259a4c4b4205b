"""
Field extraction from recognized card text.
"""

from .ocr_cleanup import (
    repair_ocr_substitutions,
    clean_ocr_text
)
from .fields import (
    NameCandidate,
    ExtractedFields,
    extract_name_candidates,
    extract_identifier,
    institution_votes,
    is_institution_card,
    extract_fields
)

__all__ = [
    'repair_ocr_substitutions',
    'clean_ocr_text',
    'NameCandidate',
    'ExtractedFields',
    'extract_name_candidates',
    'extract_identifier',
    'institution_votes',
    'is_institution_card',
    'extract_fields',
]
