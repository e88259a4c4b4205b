"""
End-to-end ID card scanning and name verification.

Pipeline:
    raw image -> decode -> rotation x variant recognition search
              -> field extraction -> ScanResult
    profile name + ScanResult -> fuzzy verification -> MatchResult

The entry points never raise for a scan, whatever the input or engine. Every
outcome, including engine failures and cancelled scans, is a
well-formed ScanResult whose error_kind tells the caller what guidance
to give (retake the photo, avoid glare, ...). Persisting results is left
to the caller.
"""

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from cardscan.extraction import extract_fields, repair_ocr_substitutions
from cardscan.institution import InstitutionProfile
from cardscan.recognition import (
    BaseRecognizer,
    RecognitionOrchestrator,
    StopReason,
    get_registry,
)
from cardscan.utils.config import DEFAULT_CONFIG, Config
from cardscan.utils.io import RawImage, UnusableImageError, as_image_buffer
from cardscan.verification import MatchResult, best_candidate_match, fuzzy_name_match


logger = logging.getLogger(__name__)

# Score at which confidence saturates at 1.0
CONFIDENCE_SCALE = 120.0

NO_CARD_MESSAGE = (
    "Could not detect an ID card. Please ensure the entire card is visible in the photo."
)
NAME_UNREADABLE_MESSAGE = (
    "Could not read the name from your ID card. "
    "Please try again with better lighting and avoid glare on the card."
)
CANCELLED_MESSAGE = "Scan cancelled."
RECOGNITION_FAILED_MESSAGE = "Text recognition failed: {}"


class ScanErrorKind(Enum):
    """Failure categories of a scan."""
    UNUSABLE_INPUT = "unusable_input"
    NO_CARD_DETECTED = "no_card_detected"
    NAME_UNREADABLE = "name_unreadable"
    RECOGNITION_FAILED = "recognition_failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ScanResult:
    """
    Outcome of scanning one card photo.

    Attributes:
        is_valid: Whether a name was read from a plausible card
        name: Best name candidate
        id_number: Registration identifier
        confidence: Card plausibility in [0, 1]
        error: Human-readable reason when the scan is not valid
        error_kind: Failure category when the scan is not valid
        institution: Institution the card was attributed to, if any
        name_candidates: All name candidates in priority order
        rotation: Rotation of the best recognition attempt
        variant: Preprocessing variant of the best attempt
        score: Plausibility score of the best attempt
        attempts: Number of recognizer runs made
        raw_text: Text of the best attempt
    """
    is_valid: bool
    name: Optional[str] = None
    id_number: Optional[str] = None
    confidence: float = 0.0
    error: Optional[str] = None
    error_kind: Optional[ScanErrorKind] = None
    institution: Optional[str] = None
    name_candidates: Tuple[str, ...] = field(default_factory=tuple)
    rotation: Optional[int] = None
    variant: Optional[str] = None
    score: int = 0
    attempts: int = 0
    raw_text: str = ""

    @classmethod
    def failure(cls, kind: ScanErrorKind, error: str, **kwargs) -> "ScanResult":
        """Build an invalid result."""
        return cls(is_valid=False, error=error, error_kind=kind, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_valid": self.is_valid,
            "name": self.name,
            "id_number": self.id_number,
            "confidence": self.confidence,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "institution": self.institution,
            "name_candidates": list(self.name_candidates),
            "rotation": self.rotation,
            "variant": self.variant,
            "score": self.score,
            "attempts": self.attempts,
            "raw_text": self.raw_text,
        }


@dataclass
class ScanJob:
    """
    Handle on a scan running in the background.

    Attributes:
        future: Future resolving to the ScanResult
        cancel_event: Event checked by the search before every attempt
    """
    future: Future
    cancel_event: threading.Event

    def cancel(self) -> None:
        """Stop the scan: no further recognition attempt will start."""
        self.cancel_event.set()
        self.future.cancel()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> ScanResult:
        """
        Wait for the scan to finish.

        Args:
            timeout: Seconds to wait, None to wait indefinitely

        Returns:
            The ScanResult; a CANCELLED result if the job never started
        """
        try:
            return self.future.result(timeout=timeout)
        except CancelledError:
            return ScanResult.failure(ScanErrorKind.CANCELLED, CANCELLED_MESSAGE)


def create_recognizer(config: Config) -> BaseRecognizer:
    """
    Instantiate the recognizer named in the configuration.

    Args:
        config: Scanner configuration

    Returns:
        Recognizer instance

    Raises:
        KeyError: If the backend is not registered
    """
    return get_registry().create_recognizer(config.recognition.backend, **config.recognition.options)


class CardScanner:
    """
    Scans ID card photos and verifies names against profiles.

    One scanner can serve many scans, sequentially via ``scan`` or
    concurrently via ``submit``; it holds no per-scan state.

    Args:
        recognizer: Recognition backend, created from config if None
        config: Scanner configuration, defaults if None
        profile: Institution profile, built from config.institution if None
        max_workers: Thread pool size for background scans
    """

    def __init__(
        self,
        recognizer: Optional[BaseRecognizer] = None,
        config: Optional[Config] = None,
        profile: Optional[InstitutionProfile] = None,
        max_workers: int = 1,
    ):
        self.config = config or DEFAULT_CONFIG
        self.profile = profile or InstitutionProfile.from_dict(self.config.institution)
        self.recognizer = recognizer or create_recognizer(self.config)
        self.orchestrator = RecognitionOrchestrator(
            self.recognizer,
            profile=self.profile,
            search_config=self.config.search,
            preprocessing_config=self.config.preprocessing,
        )
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def scan(
        self,
        raw_image: RawImage,
        cancel_event: Optional[threading.Event] = None
    ) -> ScanResult:
        """
        Scan one card photo.

        Args:
            raw_image: Encoded bytes, image path, or decoded array
            cancel_event: When set, the search starts no further attempt

        Returns:
            ScanResult
        """
        try:
            image = as_image_buffer(raw_image)
        except UnusableImageError as e:
            logger.warning(f"Unusable input image: {e}")
            return ScanResult.failure(ScanErrorKind.UNUSABLE_INPUT, f"Could not read the image: {e}")

        logger.info(f"Scanning image of size {image.shape[1]}x{image.shape[0]}")
        try:
            return self._scan_image(image, cancel_event)
        except Exception as e:
            logger.exception(f"Scan failed: {e}")
            return ScanResult.failure(
                ScanErrorKind.RECOGNITION_FAILED, RECOGNITION_FAILED_MESSAGE.format(e)
            )

    def _scan_image(
        self,
        image: np.ndarray,
        cancel_event: Optional[threading.Event]
    ) -> ScanResult:
        """Search a decoded image and extract its fields."""
        outcome = self.orchestrator.run(image, cancel_event)
        best = outcome.best

        search_info = dict(
            rotation=best.rotation if best else None,
            variant=best.variant if best else None,
            score=outcome.best_score,
            attempts=outcome.attempts,
            raw_text=outcome.text,
        )

        if outcome.stop_reason is StopReason.CANCELLED:
            return ScanResult.failure(ScanErrorKind.CANCELLED, CANCELLED_MESSAGE, **search_info)

        if outcome.engine_failed:
            logger.error(f"Recognizer failed on all {outcome.attempts} attempt(s): {outcome.last_error}")
            return ScanResult.failure(
                ScanErrorKind.RECOGNITION_FAILED,
                RECOGNITION_FAILED_MESSAGE.format(outcome.last_error),
                **search_info,
            )

        if not outcome.is_viable:
            logger.info(f"No card detected (best score {outcome.best_score})")
            return ScanResult.failure(ScanErrorKind.NO_CARD_DETECTED, NO_CARD_MESSAGE, **search_info)

        fields = extract_fields(outcome.text, self.profile)
        confidence = min(outcome.best_score / CONFIDENCE_SCALE, 1.0)
        name = fields.best_name

        return ScanResult(
            is_valid=name is not None,
            name=name,
            id_number=fields.id_number,
            confidence=confidence,
            error=None if name else NAME_UNREADABLE_MESSAGE,
            error_kind=None if name else ScanErrorKind.NAME_UNREADABLE,
            institution=fields.institution,
            name_candidates=tuple(c.text for c in fields.name_candidates),
            **search_info,
        )

    def verify(self, profile_name: str, scan: Union[ScanResult, str]) -> MatchResult:
        """Verify a profile name against a scan; see verify_name."""
        return verify_name(profile_name, scan)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="cardscan"
                )
            return self._executor

    def submit(self, raw_image: RawImage) -> ScanJob:
        """
        Run a scan on the scanner's worker pool.

        Args:
            raw_image: Encoded bytes, image path, or decoded array

        Returns:
            ScanJob handle for waiting on or cancelling the scan
        """
        cancel_event = threading.Event()
        future = self._get_executor().submit(self.scan, raw_image, cancel_event)
        return ScanJob(future=future, cancel_event=cancel_event)

    def close(self) -> None:
        """Shut down the worker pool, waiting for running scans."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "CardScanner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def scan_card(
    raw_image: RawImage,
    recognizer: Optional[BaseRecognizer] = None,
    config: Optional[Config] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ScanResult:
    """
    Scan one card photo with a throwaway scanner.

    Args:
        raw_image: Encoded bytes, image path, or decoded array
        recognizer: Recognition backend, created from config if None
        config: Scanner configuration, defaults if None
        cancel_event: When set, the search starts no further attempt

    Returns:
        ScanResult
    """
    return CardScanner(recognizer=recognizer, config=config).scan(raw_image, cancel_event)


def verify_name(profile_name: str, scan: Union[ScanResult, str]) -> MatchResult:
    """
    Verify a profile name against a scanned card.

    For a ScanResult every name candidate is tried and the best match is
    returned. A result carrying only ``name`` (e.g. rebuilt from storage)
    is matched on that name; one with neither never matches. A plain
    string is treated as a raw card name and gets OCR substitution repair
    first.

    Args:
        profile_name: Reference name from the user profile
        scan: ScanResult or card name string

    Returns:
        MatchResult
    """
    if isinstance(scan, ScanResult):
        candidates = scan.name_candidates or ((scan.name,) if scan.name else ())
        if not candidates:
            return MatchResult(is_match=False, similarity=0.0)
        result = best_candidate_match(profile_name, candidates)
    else:
        result = fuzzy_name_match(profile_name, repair_ocr_substitutions(scan))

    logger.info(
        f"Name verification: match={result.is_match} similarity={result.similarity:.2f}"
    )
    return result


def validate_scan(result: ScanResult) -> bool:
    """Check that a scan is valid and carries a name of 3+ characters."""
    return result.is_valid and result.name is not None and len(result.name) >= 3


def mask_id_number(id_number: str) -> str:
    """Hide all but the last four characters of an identifier."""
    if len(id_number) <= 4:
        return id_number
    return f"****{id_number[-4:]}"
