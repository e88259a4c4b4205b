"""
Recognizer interface definitions.

This module defines the base interface for text recognition backends.
The orchestrator only ever calls ``recognize``, so any OCR engine (or a
scripted fake in tests) can be plugged in behind it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np


class RecognitionError(RuntimeError):
    """Raised by a recognizer when the engine fails on an image."""


@dataclass(frozen=True)
class RecognitionAttempt:
    """
    One recognizer run in the rotation x variant search.

    Attributes:
        rotation: Clockwise rotation applied to the photo, in degrees
        variant: Name of the preprocessing variant
        text: Recognized text
        score: Heuristic card plausibility score of the text
        error: Recognizer failure message, None if the engine ran
    """
    rotation: int
    variant: str
    text: str
    score: int
    error: Optional[str] = None


class BaseRecognizer(ABC):
    """
    Abstract base class for text recognizers.

    Implementations must be stateless per call: the same instance may be
    invoked repeatedly and from several threads, and no call may change
    configuration seen by another.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the display name of the recognizer.

        Returns:
            Human-readable name
        """
        pass

    @abstractmethod
    def recognize(self, image: np.ndarray) -> str:
        """
        Recognize the text in a preprocessed image.

        Args:
            image: Single-channel uint8 image, dark text on light background

        Returns:
            Recognized text, lines separated by newlines

        Raises:
            RecognitionError: If the engine fails
        """
        pass

    def get_current_parameters(self) -> Dict[str, Any]:
        """
        Get current parameter values.

        Returns:
            Dictionary of parameter names to current values
        """
        return {}
