"""
Multi-pass recognition search over rotations and preprocessing variants.

Card photos arrive in any orientation and quality, so the recognizer is
run on every (rotation, variant) combination until one of them produces
text that is clearly card-like. The search is an explicit state machine:

    state  = best attempt so far + best score within the current rotation
    after every attempt:
        best score >= strong_threshold            -> stop (STRONG_MATCH)
    after the last variant of a rotation:
        rotation best score >= good_threshold     -> stop (GOOD_ROTATION)
    cancel event set before an attempt            -> stop (CANCELLED)
    no combinations left                          -> stop (EXHAUSTED)

The stop rule lives in ``evaluate_stop`` so the thresholds can be tested
without running the loop. Attempts are sequential because every stop
decision depends on the results seen so far.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

import numpy as np

from cardscan.institution import DEFAULT_PROFILE, InstitutionProfile
from cardscan.preprocessing.transforms import ROTATIONS, rotate
from cardscan.preprocessing.variants import (
    PreprocessingVariant,
    build_variants,
    generate_variants,
    prepare_base,
)
from cardscan.recognition.recognizer_interface import (
    BaseRecognizer,
    RecognitionAttempt,
    RecognitionError,
)
from cardscan.recognition.scoring import score_text
from cardscan.utils.config import PreprocessingConfig, SearchConfig


logger = logging.getLogger(__name__)


class StopReason(Enum):
    """Why the search ended."""
    STRONG_MATCH = "strong_match"
    GOOD_ROTATION = "good_rotation"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class SearchState:
    """
    Mutable bookkeeping of one search.

    Only the best attempt is retained; every other attempt is discarded
    as soon as it has been scored.

    Attributes:
        best: Highest-scoring attempt so far (earliest wins ties)
        rotation: Rotation of the most recent attempt
        rotation_best_score: Best score seen within that rotation
        attempts: Number of recognizer runs made
        failures: Number of runs in which the recognizer raised
        last_error: Message of the most recent recognizer failure
    """
    best: Optional[RecognitionAttempt] = None
    rotation: Optional[int] = None
    rotation_best_score: int = -1
    attempts: int = 0
    failures: int = 0
    last_error: Optional[str] = None

    @property
    def best_score(self) -> int:
        return self.best.score if self.best is not None else -1

    def record(self, attempt: RecognitionAttempt) -> None:
        """Fold one attempt into the state."""
        if attempt.rotation != self.rotation:
            self.rotation = attempt.rotation
            self.rotation_best_score = -1

        self.attempts += 1
        if attempt.error is not None:
            self.failures += 1
            self.last_error = attempt.error
        self.rotation_best_score = max(self.rotation_best_score, attempt.score)

        if self.best is None or attempt.score > self.best.score:
            self.best = attempt


def evaluate_stop(
    state: SearchState,
    config: SearchConfig,
    rotation_complete: bool = False
) -> Optional[StopReason]:
    """
    Decide whether the search can stop after the latest attempt.

    Args:
        state: Current search state
        config: Search thresholds
        rotation_complete: Whether the latest attempt was the last
            variant of its rotation

    Returns:
        StopReason to stop with, or None to continue
    """
    if state.best_score >= config.strong_threshold:
        return StopReason.STRONG_MATCH

    if rotation_complete and state.rotation_best_score >= config.good_threshold:
        return StopReason.GOOD_ROTATION

    return None


@dataclass(frozen=True)
class SearchOutcome:
    """
    Result of a recognition search.

    Attributes:
        best: Best attempt, None if no attempt was made
        attempts: Number of recognizer runs made
        stop_reason: Why the search ended
        is_viable: Whether the best score reached the minimum viability score
        failures: Number of attempts in which the recognizer raised
        last_error: Message of the most recent recognizer failure
    """
    best: Optional[RecognitionAttempt]
    attempts: int
    stop_reason: StopReason
    is_viable: bool
    failures: int = 0
    last_error: Optional[str] = None

    @property
    def engine_failed(self) -> bool:
        """Whether attempts were made and the recognizer raised on all of them."""
        return self.attempts > 0 and self.failures == self.attempts

    @property
    def best_score(self) -> int:
        return self.best.score if self.best is not None else 0

    @property
    def text(self) -> str:
        return self.best.text if self.best is not None else ""


class RecognitionOrchestrator:
    """
    Drives a recognizer over the rotation x variant search space.

    The orchestrator keeps no state between runs; one instance can serve
    concurrent scans as long as its recognizer can.

    Args:
        recognizer: Text recognition backend
        profile: Institution profile used for scoring
        search_config: Rotation order and thresholds
        preprocessing_config: Variant parameters

    Raises:
        ValueError: If a configured rotation is not a quarter turn
    """

    def __init__(
        self,
        recognizer: BaseRecognizer,
        profile: InstitutionProfile = DEFAULT_PROFILE,
        search_config: Optional[SearchConfig] = None,
        preprocessing_config: Optional[PreprocessingConfig] = None,
    ):
        self.recognizer = recognizer
        self.profile = profile
        self.search_config = search_config or SearchConfig()
        self.preprocessing_config = preprocessing_config or PreprocessingConfig()
        self.variants: List[PreprocessingVariant] = build_variants(self.preprocessing_config)

        invalid = [r for r in self.search_config.rotations if r not in ROTATIONS]
        if invalid:
            raise ValueError(f"Unsupported rotations {invalid}, expected values from {ROTATIONS}")

    def _search_space(
        self,
        base: np.ndarray
    ) -> Iterator[Tuple[int, PreprocessingVariant, np.ndarray, bool]]:
        """Yield (rotation, variant, image, last-variant-of-rotation) lazily."""
        last = len(self.variants) - 1
        for rotation in self.search_config.rotations:
            rotated = rotate(base, rotation)
            for i, (variant, processed) in enumerate(generate_variants(rotated, self.variants)):
                yield rotation, variant, processed, i == last

    def _attempt(self, rotation: int, variant: PreprocessingVariant, image: np.ndarray) -> RecognitionAttempt:
        """Run the recognizer once and score its output."""
        error = None
        try:
            text = self.recognizer.recognize(image)
        except RecognitionError as e:
            logger.warning(f"Recognition failed (rotation {rotation}, {variant.name}): {e}")
            text = ""
            error = str(e)

        score = score_text(text, self.profile)
        logger.debug(f"rotation={rotation} variant={variant.name} score={score}")

        return RecognitionAttempt(
            rotation=rotation, variant=variant.name, text=text, score=score, error=error
        )

    def run(
        self,
        image: np.ndarray,
        cancel_event: Optional[threading.Event] = None
    ) -> SearchOutcome:
        """
        Search for the most card-like recognition of an image.

        Args:
            image: Decoded card photo (RGB or grayscale)
            cancel_event: When set, no further attempt is started

        Returns:
            SearchOutcome with the best attempt seen
        """
        config = self.search_config
        base = prepare_base(image, self.preprocessing_config.target_min_dim)
        space = self._search_space(base)
        state = SearchState()
        stop_reason = None

        while stop_reason is None:
            if cancel_event is not None and cancel_event.is_set():
                stop_reason = StopReason.CANCELLED
                break

            item = next(space, None)
            if item is None:
                stop_reason = StopReason.EXHAUSTED
                break

            rotation, variant, processed, rotation_complete = item
            state.record(self._attempt(rotation, variant, processed))
            stop_reason = evaluate_stop(state, config, rotation_complete)

        space.close()

        is_viable = state.best is not None and state.best.score >= config.min_viable_score
        outcome = SearchOutcome(
            best=state.best,
            attempts=state.attempts,
            stop_reason=stop_reason,
            is_viable=is_viable,
            failures=state.failures,
            last_error=state.last_error,
        )

        if state.best is not None:
            logger.info(
                f"Search stopped ({stop_reason.value}) after {state.attempts} attempt(s): "
                f"best score {state.best.score} at rotation {state.best.rotation} "
                f"with {state.best.variant}"
            )
        else:
            logger.info(f"Search stopped ({stop_reason.value}) before any attempt")

        return outcome
