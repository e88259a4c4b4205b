"""Fake recognizers and sample texts shared by the tests."""

import threading
from typing import Callable, List, Sequence, Union

import numpy as np

from cardscan.recognition import BaseRecognizer, RecognitionError


STRONG_TEXT = (
    "SRM INSTITUTE OF SCIENCE AND TECHNOLOGY\n"
    "Name : VISHAL SINGH\n"
    "Programme : B.Tech CSE\n"
    "Register No. : RA2111003010123\n"
)

UNSCORABLE_TEXT = "lorem ipsum dolor sit amet"


class ScriptedRecognizer(BaseRecognizer):
    """
    Fake recognizer returning scripted text.

    ``script`` is either a fixed string, a sequence consumed one entry per
    call (the last entry repeats), or a callable of (image, call_index).
    """

    def __init__(self, script: Union[str, Sequence[str], Callable[[np.ndarray, int], str]] = ""):
        self.script = script
        self.calls = 0
        self.shapes: List[tuple] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "Scripted"

    def recognize(self, image: np.ndarray) -> str:
        with self._lock:
            index = self.calls
            self.calls += 1
            self.shapes.append(image.shape)

        if callable(self.script):
            return self.script(image, index)
        if isinstance(self.script, str):
            return self.script
        return self.script[min(index, len(self.script) - 1)]


class FailingRecognizer(BaseRecognizer):
    """Fake recognizer whose engine always fails."""

    def __init__(self):
        self.calls = 0

    @property
    def name(self) -> str:
        return "Failing"

    def recognize(self, image: np.ndarray) -> str:
        self.calls += 1
        raise RecognitionError("engine crashed")


class CrashingRecognizer(BaseRecognizer):
    """Fake third-party recognizer raising an exception it does not wrap."""

    def __init__(self, error: Exception = None):
        self.error = error or OSError("engine pipe broken")
        self.calls = 0

    @property
    def name(self) -> str:
        return "Crashing"

    def recognize(self, image: np.ndarray) -> str:
        self.calls += 1
        raise self.error


class BlockingRecognizer(BaseRecognizer):
    """Fake recognizer that blocks until released, for cancellation tests."""

    def __init__(self, text: str = UNSCORABLE_TEXT):
        self.text = text
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()

    @property
    def name(self) -> str:
        return "Blocking"

    def recognize(self, image: np.ndarray) -> str:
        self.calls += 1
        self.started.set()
        self.release.wait(10)
        return self.text

