"""
Text recognition: backends, plausibility scoring and the multi-pass search.
"""

from cardscan.recognition.recognizer_interface import (
    BaseRecognizer,
    RecognitionAttempt,
    RecognitionError,
)
from cardscan.recognition.recognizer_registry import (
    RecognizerRegistry,
    RecognizerInfo,
    get_registry,
)
from cardscan.recognition.scoring import (
    score_breakdown,
    score_text,
)
from cardscan.recognition.orchestrator import (
    RecognitionOrchestrator,
    SearchOutcome,
    SearchState,
    StopReason,
    evaluate_stop,
)

__all__ = [
    "BaseRecognizer",
    "RecognitionAttempt",
    "RecognitionError",
    "RecognizerRegistry",
    "RecognizerInfo",
    "get_registry",
    "score_breakdown",
    "score_text",
    "RecognitionOrchestrator",
    "SearchOutcome",
    "SearchState",
    "StopReason",
    "evaluate_stop",
]
