"""
Repair and cleanup rules for recognized card text.

OCR on card photos confuses visually similar glyphs and picks up
watermark fragments. The substitution repair runs first because the
label patterns used for name extraction need clean letters; the noise
cleaning is applied to each extracted name fragment.
"""

import re

from cardscan.institution import DEFAULT_PROFILE, InstitutionProfile


# Glyphs read in place of a capital I
_I_CONFUSABLES = re.compile(r'[|!l1]')

# (digit, letter) pairs replaced when adjacent to an upper-case letter
_DIGIT_LETTER_PAIRS = (('0', 'O'), ('5', 'S'), ('8', 'B'))


def _is_upper(ch: str) -> bool:
    return len(ch) == 1 and 'A' <= ch <= 'Z'


def _repair_i(match: re.Match) -> str:
    text = match.string
    pos = match.start()
    before = text[pos - 1] if pos > 0 else ''
    after = text[pos + 1] if pos + 1 < len(text) else ''

    if _is_upper(before) or _is_upper(after):
        return 'I'
    return match.group(0)


def repair_ocr_substitutions(text: str) -> str:
    """
    Fix characters OCR commonly confuses inside upper-case words.

    Rules, applied in order:
    - ``| ! l 1`` next to an upper-case letter (judged on the unrepaired
      text) become ``I``
    - ``0`` becomes ``O``, ``5`` becomes ``S`` and ``8`` becomes ``B``
      when followed by, then when preceded by, an upper-case letter

    Args:
        text: Raw recognized text

    Returns:
        Repaired text
    """
    text = _I_CONFUSABLES.sub(_repair_i, text)

    for digit, letter in _DIGIT_LETTER_PAIRS:
        text = re.sub(f'{digit}(?=[A-Z])', letter, text)
        text = re.sub(f'(?<=[A-Z]){digit}', letter, text)

    return text


def clean_ocr_text(text: str, profile: InstitutionProfile = DEFAULT_PROFILE) -> str:
    """
    Strip OCR noise from a name fragment.

    Removes watermark readings and institution-name fragments, stray
    symbols, digits and single letters, then collapses whitespace. The
    result contains only letters and single spaces.

    Args:
        text: Text fragment
        profile: Institution profile supplying the noise patterns

    Returns:
        Cleaned text (possibly empty)
    """
    for pattern in profile.watermark_patterns:
        text = re.sub(pattern, '', text)
    for pattern in profile.noise_patterns:
        text = re.sub(pattern, '', text)

    text = re.sub(r'\b[^a-zA-Z\s]\b', '', text)
    text = re.sub(r'[0-9]', '', text)
    text = re.sub(r'[^a-zA-Z\s]', ' ', text)
    text = re.sub(r'\b[a-zA-Z]\b', '', text)

    return re.sub(r'\s+', ' ', text).strip()
