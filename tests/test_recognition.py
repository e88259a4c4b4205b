"""
Tests for scoring, the recognizer registry and the multi-pass search.
"""

import logging
import threading

import numpy as np
import pytest
import pytesseract

from cardscan.recognition import (
    RecognitionAttempt,
    RecognitionError,
    RecognitionOrchestrator,
    SearchState,
    StopReason,
    evaluate_stop,
    get_registry,
    score_breakdown,
    score_text,
)
from cardscan.recognition.tesseract import TesseractRecognizer
from cardscan.utils.config import SearchConfig

from fakes import (
    STRONG_TEXT,
    UNSCORABLE_TEXT,
    FailingRecognizer,
    ScriptedRecognizer,
)


GOOD_TEXT = "Name : SOMEONE\nRegister"  # 50 + 20


def _attempt(rotation, score, variant="v"):
    return RecognitionAttempt(rotation=rotation, variant=variant, text="", score=score)


class TestScoring:
    """Tests for the plausibility score."""

    def test_strong_card_text(self):
        """Every rule present in a full card contributes once."""
        assert score_text(STRONG_TEXT) == 140

    def test_empty_text_scores_zero(self):
        """Empty text scores 0."""
        assert score_text("") == 0

    def test_unrelated_text_scores_zero(self):
        """Text without any card keyword scores 0."""
        assert score_text(UNSCORABLE_TEXT) == 0

    def test_rule_counts_once(self):
        """Repeated keywords do not add up."""
        assert score_text("register register register") == 20

    def test_breakdown_lists_matched_rules(self):
        """The breakdown holds only the matched rules and sums to the score."""
        breakdown = score_breakdown("Programme: B.Tech")
        assert sorted(breakdown.values()) == [15, 20]
        assert sum(breakdown.values()) == score_text("Programme: B.Tech")


class TestEvaluateStop:
    """Tests for the stop rule in isolation."""

    def test_strong_score_stops_immediately(self):
        """A strong score stops even mid-rotation."""
        state = SearchState()
        state.record(_attempt(0, 100))
        assert evaluate_stop(state, SearchConfig()) == StopReason.STRONG_MATCH

    def test_good_score_waits_for_rotation_end(self):
        """A good score only stops once the rotation is complete."""
        state = SearchState()
        state.record(_attempt(0, 70))

        assert evaluate_stop(state, SearchConfig()) is None
        assert evaluate_stop(state, SearchConfig(), rotation_complete=True) == StopReason.GOOD_ROTATION

    def test_good_score_uses_current_rotation(self):
        """A good score from an earlier rotation does not stop a later one."""
        state = SearchState()
        state.record(_attempt(0, 80))
        state.record(_attempt(90, 10))

        assert state.best_score == 80
        assert state.rotation_best_score == 10
        assert evaluate_stop(state, SearchConfig(), rotation_complete=True) is None

    def test_weak_score_continues(self):
        """Scores below both thresholds never stop the search."""
        state = SearchState()
        state.record(_attempt(0, 69))
        assert evaluate_stop(state, SearchConfig(), rotation_complete=True) is None

    def test_ties_keep_earliest(self):
        """An equal later score does not replace the best attempt."""
        state = SearchState()
        first = _attempt(0, 30, "first")
        state.record(first)
        state.record(_attempt(0, 30, "second"))

        assert state.best is first
        assert state.attempts == 2

    def test_custom_thresholds(self):
        """Thresholds come from the configuration."""
        state = SearchState()
        state.record(_attempt(0, 40))
        assert evaluate_stop(state, SearchConfig(strong_threshold=40)) == StopReason.STRONG_MATCH


class TestOrchestrator:
    """Tests for the rotation x variant search."""

    def _run(self, recognizer, image, preprocessing_config, cancel_event=None, **search):
        orchestrator = RecognitionOrchestrator(
            recognizer,
            search_config=SearchConfig(**search),
            preprocessing_config=preprocessing_config,
        )
        return orchestrator.run(image, cancel_event)

    def test_strong_match_stops_after_first_attempt(self, card_image, preprocessing_config):
        """A strong first reading ends the search at once."""
        recognizer = ScriptedRecognizer(STRONG_TEXT)
        outcome = self._run(recognizer, card_image, preprocessing_config)

        assert outcome.attempts == 1
        assert recognizer.calls == 1
        assert outcome.stop_reason == StopReason.STRONG_MATCH
        assert outcome.best.rotation == 0
        assert outcome.best.variant == "adaptive-threshold-large-block"
        assert outcome.best_score == 140
        assert outcome.is_viable

    def test_good_rotation_skips_remaining_rotations(self, card_image, preprocessing_config):
        """A good rotation ends the search after its four variants."""
        recognizer = ScriptedRecognizer(GOOD_TEXT)
        outcome = self._run(recognizer, card_image, preprocessing_config)

        assert outcome.attempts == 4
        assert outcome.stop_reason == StopReason.GOOD_ROTATION
        assert outcome.best.rotation == 0
        assert outcome.best_score == 70

    def test_unscorable_text_exhausts_search(self, card_image, preprocessing_config):
        """All sixteen combinations are tried when nothing scores."""
        recognizer = ScriptedRecognizer(UNSCORABLE_TEXT)
        outcome = self._run(recognizer, card_image, preprocessing_config)

        assert outcome.attempts == 16
        assert outcome.stop_reason == StopReason.EXHAUSTED
        assert not outcome.is_viable
        assert outcome.best_score == 0
        assert outcome.best.rotation == 0
        assert outcome.best.variant == "adaptive-threshold-large-block"

    def test_rotation_order(self, card_image, preprocessing_config):
        """Rotations are tried 0, 90, 270, 180 with four variants each."""
        recognizer = ScriptedRecognizer(UNSCORABLE_TEXT)
        self._run(recognizer, card_image, preprocessing_config)

        landscape = recognizer.shapes[0]
        portrait = (landscape[1], landscape[0])
        assert landscape[0] < landscape[1]
        assert recognizer.shapes == [landscape] * 4 + [portrait] * 8 + [landscape] * 4

    def test_sideways_card_found_at_quarter_turn(self, card_image, preprocessing_config):
        """Text only readable in portrait is found at 90 degrees."""
        def read_portrait(image, index):
            return STRONG_TEXT if image.shape[0] > image.shape[1] else UNSCORABLE_TEXT

        recognizer = ScriptedRecognizer(read_portrait)
        outcome = self._run(recognizer, card_image, preprocessing_config)

        assert outcome.attempts == 5
        assert outcome.best.rotation == 90
        assert outcome.stop_reason == StopReason.STRONG_MATCH

    def test_best_attempt_across_rotations(self, card_image, preprocessing_config):
        """The best attempt is kept when no threshold is reached."""
        script = [UNSCORABLE_TEXT] * 5 + ["Programme SRM"] + [UNSCORABLE_TEXT] * 10
        outcome = self._run(ScriptedRecognizer(script), card_image, preprocessing_config)

        assert outcome.attempts == 16
        assert outcome.best_score == 30
        assert outcome.best.rotation == 90
        assert outcome.best.variant == "contrast-otsu"
        assert outcome.is_viable

    def test_pre_cancelled_search_makes_no_attempt(self, card_image, preprocessing_config):
        """A set cancel event stops the search before the first attempt."""
        event = threading.Event()
        event.set()
        recognizer = ScriptedRecognizer(STRONG_TEXT)

        outcome = self._run(recognizer, card_image, preprocessing_config, cancel_event=event)

        assert outcome.attempts == 0
        assert recognizer.calls == 0
        assert outcome.best is None
        assert outcome.stop_reason == StopReason.CANCELLED
        assert not outcome.is_viable

    def test_cancel_mid_search(self, card_image, preprocessing_config):
        """Cancellation takes effect before the next attempt."""
        event = threading.Event()

        def cancel_on_second(image, index):
            if index == 1:
                event.set()
            return UNSCORABLE_TEXT

        outcome = self._run(
            ScriptedRecognizer(cancel_on_second), card_image, preprocessing_config, cancel_event=event
        )

        assert outcome.attempts == 2
        assert outcome.stop_reason == StopReason.CANCELLED

    def test_recognizer_failure_counts_as_empty_text(self, card_image, preprocessing_config):
        """A failing engine scores 0 and does not abort the search."""
        recognizer = FailingRecognizer()
        outcome = self._run(recognizer, card_image, preprocessing_config)

        assert recognizer.calls == 16
        assert outcome.attempts == 16
        assert outcome.best.text == ""
        assert outcome.best_score == 0
        assert outcome.failures == 16
        assert outcome.engine_failed
        assert outcome.last_error == "engine crashed"

    def test_partial_failures_are_not_engine_failure(self, card_image, preprocessing_config):
        """Failures on some attempts only are counted but do not mark the engine as failed."""
        def script(image, index):
            if index == 0:
                raise RecognitionError("transient")
            return UNSCORABLE_TEXT

        outcome = self._run(ScriptedRecognizer(script), card_image, preprocessing_config)

        assert outcome.attempts == 16
        assert outcome.failures == 1
        assert not outcome.engine_failed

    def test_custom_rotation_list(self, card_image, preprocessing_config):
        """Only the configured rotations are searched."""
        recognizer = ScriptedRecognizer(UNSCORABLE_TEXT)
        outcome = self._run(recognizer, card_image, preprocessing_config, rotations=(0,))
        assert outcome.attempts == 4

    def test_invalid_rotation_rejected(self):
        """Rotations must be quarter turns."""
        with pytest.raises(ValueError):
            RecognitionOrchestrator(ScriptedRecognizer(), search_config=SearchConfig(rotations=(0, 45)))


class TestRegistry:
    """Tests for the recognizer registry."""

    def test_tesseract_is_built_in(self):
        """The default backend is registered."""
        registry = get_registry()
        assert registry.is_registered("tesseract")
        assert isinstance(registry.create_recognizer("tesseract"), TesseractRecognizer)

    def test_register_and_create(self):
        """Registered factories receive the creation options."""
        registry = get_registry()
        registry.register("scripted", ScriptedRecognizer, description="Fake")
        try:
            recognizer = registry.create_recognizer("scripted", script="hello")
            assert recognizer.recognize(np.zeros((2, 2), dtype=np.uint8)) == "hello"
            assert registry.get_recognizer_info("scripted").description == "Fake"
            assert "scripted" in [info.id for info in registry.list_recognizers()]
        finally:
            registry.unregister("scripted")

        assert not registry.is_registered("scripted")

    def test_unknown_backend(self):
        """Creating an unregistered backend raises KeyError."""
        with pytest.raises(KeyError):
            get_registry().create_recognizer("no-such-engine")


class TestTesseractRecognizer:
    """Tests for the pytesseract wrapper, without the tesseract binary."""

    def test_parameters(self):
        """Constructor options are reported back."""
        recognizer = TesseractRecognizer(language="eng", psm=4)
        params = recognizer.get_current_parameters()

        assert params["psm"] == 4
        assert params["oem"] == 1
        assert recognizer.name == "Tesseract"

    def test_passes_configuration(self, monkeypatch, card_image):
        """The engine receives the language and page segmentation settings."""
        seen = {}

        def fake_image_to_string(image, lang=None, config="", timeout=0):
            seen["lang"] = lang
            seen["config"] = config
            seen["size"] = image.size
            return "Name : TEST"

        monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)
        text = TesseractRecognizer().recognize(card_image)

        assert text == "Name : TEST"
        assert seen["lang"] == "eng"
        assert "--psm 6" in seen["config"]
        assert "--oem 1" in seen["config"]
        assert seen["size"] == (50, 30)

    def test_engine_error_is_wrapped(self, monkeypatch, card_image):
        """Engine failures surface as RecognitionError."""
        def failing(*args, **kwargs):
            raise pytesseract.TesseractError(1, "boom")

        monkeypatch.setattr(pytesseract, "image_to_string", failing)
        with pytest.raises(RecognitionError):
            TesseractRecognizer().recognize(card_image)

    def test_missing_binary_is_wrapped(self, monkeypatch, card_image):
        """A missing tesseract binary surfaces as RecognitionError."""
        def missing(*args, **kwargs):
            raise pytesseract.TesseractNotFoundError()

        monkeypatch.setattr(pytesseract, "image_to_string", missing)
        with pytest.raises(RecognitionError):
            TesseractRecognizer().recognize(card_image)

    def test_os_error_is_wrapped(self, monkeypatch, card_image):
        """Operating system errors from the engine call surface as RecognitionError."""
        def denied(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(pytesseract, "image_to_string", denied)
        with pytest.raises(RecognitionError):
            TesseractRecognizer().recognize(card_image)

    def test_conflicting_binary_path_warns(self, monkeypatch, caplog):
        """Setting a second, different binary path is logged as process-wide."""
        monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")

        with caplog.at_level(logging.WARNING, logger="cardscan.recognition.tesseract"):
            TesseractRecognizer(tesseract_cmd="/opt/a/tesseract")
            TesseractRecognizer(tesseract_cmd="/opt/a/tesseract")
            assert not caplog.records

            TesseractRecognizer(tesseract_cmd="/opt/b/tesseract")

        assert pytesseract.pytesseract.tesseract_cmd == "/opt/b/tesseract"
        assert len(caplog.records) == 1
        assert "/opt/a/tesseract" in caplog.records[0].getMessage()
