"""
cardscan - ID card name and registration number extraction

Reads the holder's name and registration number from photographs of
institutional ID cards taken under poor conditions (rotation, glare,
watermarks, uneven lighting, low resolution) and verifies the name
against a profile name.

Usage:
    from cardscan import scan_card, verify_name

    result = scan_card("card.jpg")
    if result.is_valid:
        match = verify_name("Vishal Singh", result)
"""

from cardscan.pipeline import (
    CardScanner,
    ScanErrorKind,
    ScanJob,
    ScanResult,
    mask_id_number,
    scan_card,
    validate_scan,
    verify_name,
)
from cardscan.verification import MatchResult

__version__ = "0.1.0"

__all__ = [
    "CardScanner",
    "ScanErrorKind",
    "ScanJob",
    "ScanResult",
    "MatchResult",
    "mask_id_number",
    "scan_card",
    "validate_scan",
    "verify_name",
]
