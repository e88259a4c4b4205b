"""
Recognizer registry for backend discovery.

Recognition backends register a factory under an id, and the scanner
creates its recognizer from the id named in the configuration instead of
hardcoding an engine.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from cardscan.recognition.recognizer_interface import BaseRecognizer


@dataclass
class RecognizerInfo:
    """
    Information about a registered recognizer.

    Attributes:
        id: Unique identifier for the recognizer
        description: Description of the backend
        factory: Factory function to create the recognizer
    """
    id: str
    description: str
    factory: Callable[..., BaseRecognizer]


class RecognizerRegistry:
    """
    Central registry for text recognizers.

    Provides methods to register, discover, and instantiate recognizers.
    """

    _instance: Optional["RecognizerRegistry"] = None

    def __new__(cls) -> "RecognizerRegistry":
        """Singleton pattern to ensure a single registry instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._recognizers = {}
            cls._instance._initialized = False
        return cls._instance

    def register(
        self,
        recognizer_id: str,
        factory: Callable[..., BaseRecognizer],
        description: str = "",
    ) -> None:
        """
        Register a recognizer factory.

        Registering an existing id replaces the previous entry.

        Args:
            recognizer_id: Unique identifier
            factory: Factory function to create instances
            description: Backend description
        """
        self._recognizers[recognizer_id] = RecognizerInfo(
            id=recognizer_id,
            description=description,
            factory=factory,
        )

    def unregister(self, recognizer_id: str) -> None:
        """
        Remove a recognizer from the registry.

        Args:
            recognizer_id: ID of recognizer to remove
        """
        self._recognizers.pop(recognizer_id, None)

    def get_recognizer_info(self, recognizer_id: str) -> Optional[RecognizerInfo]:
        """Get information about a specific recognizer, None if unknown."""
        return self._recognizers.get(recognizer_id)

    def list_recognizers(self) -> List[RecognizerInfo]:
        """
        List all registered recognizers.

        Returns:
            List of RecognizerInfo for all registered recognizers
        """
        return list(self._recognizers.values())

    def is_registered(self, recognizer_id: str) -> bool:
        """Check if a recognizer id is registered."""
        return recognizer_id in self._recognizers

    def create_recognizer(self, recognizer_id: str, **kwargs) -> BaseRecognizer:
        """
        Create a recognizer instance.

        Args:
            recognizer_id: ID of recognizer to create
            **kwargs: Parameters to pass to the factory

        Returns:
            BaseRecognizer instance

        Raises:
            KeyError: If no recognizer is registered under the id
        """
        info = self._recognizers.get(recognizer_id)
        if info is None:
            available = ", ".join(sorted(self._recognizers)) or "none"
            raise KeyError(f"Unknown recognizer '{recognizer_id}' (available: {available})")

        return info.factory(**kwargs)

    def clear(self) -> None:
        """Clear all registered recognizers."""
        self._recognizers.clear()
        self._initialized = False


def get_registry() -> RecognizerRegistry:
    """
    Get the global recognizer registry instance.

    Returns:
        The singleton RecognizerRegistry, populated with the built-in backends
    """
    registry = RecognizerRegistry()

    if not registry._initialized:
        _register_default_recognizers(registry)
        registry._initialized = True

    return registry


def _register_default_recognizers(registry: RecognizerRegistry) -> None:
    """
    Register the built-in recognizers.

    Args:
        registry: The registry to populate
    """
    from cardscan.recognition.tesseract import TesseractRecognizer

    registry.register(
        "tesseract",
        TesseractRecognizer,
        description="Tesseract LSTM engine via pytesseract, single text block",
    )
