"""
Tesseract recognition backend.

Wraps pytesseract behind the BaseRecognizer interface with settings
suited to ID cards: LSTM engine, the whole image treated as one block of
text, and a Latin alphanumeric character whitelist.
"""

import logging
import string
from typing import Any, Dict, Optional

import numpy as np
import pytesseract
from PIL import Image

from cardscan.recognition.recognizer_interface import BaseRecognizer, RecognitionError


logger = logging.getLogger(__name__)

CHAR_WHITELIST = string.ascii_uppercase + string.ascii_lowercase + string.digits + ".:()-/,"
DEFAULT_TESSERACT_CMD = "tesseract"


class TesseractRecognizer(BaseRecognizer):
    """
    Tesseract OCR via pytesseract.

    The configuration string is built once in the constructor and never
    changed afterwards, so one instance can serve concurrent scans.

    Args:
        language: Tesseract language code
        oem: OCR engine mode (1 = LSTM only)
        psm: Page segmentation mode (6 = single uniform block of text)
        tesseract_cmd: Path to the tesseract binary if it is not on PATH.
            pytesseract keeps this path process-wide, so all recognizers
            in one process share a single binary; the last one set wins.
        timeout: Seconds before a single recognition is aborted, 0 for none
    """

    def __init__(
        self,
        language: str = "eng",
        oem: int = 1,
        psm: int = 6,
        tesseract_cmd: Optional[str] = None,
        timeout: float = 0,
    ):
        self.language = language
        self.oem = oem
        self.psm = psm
        self.timeout = timeout

        if tesseract_cmd:
            current = pytesseract.pytesseract.tesseract_cmd
            if current not in (DEFAULT_TESSERACT_CMD, tesseract_cmd):
                logger.warning(
                    f"Replacing tesseract binary {current} with {tesseract_cmd} for all recognizers"
                )
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

        self._config = (
            f"--oem {oem} --psm {psm} "
            f"-c tessedit_char_whitelist={CHAR_WHITELIST} "
            f"-c preserve_interword_spaces=1"
        )

    @property
    def name(self) -> str:
        return "Tesseract"

    def recognize(self, image: np.ndarray) -> str:
        """
        Recognize text in a preprocessed card image.

        Args:
            image: uint8 image, single channel or RGB

        Returns:
            Recognized text

        Raises:
            RecognitionError: If tesseract is missing, fails or times out
        """
        try:
            return pytesseract.image_to_string(
                Image.fromarray(image),
                lang=self.language,
                config=self._config,
                timeout=self.timeout,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionError(f"Tesseract binary not found: {e}") from e
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            raise RecognitionError(f"Tesseract failed: {e}") from e

    def get_current_parameters(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "oem": self.oem,
            "psm": self.psm,
            "timeout": self.timeout,
        }
