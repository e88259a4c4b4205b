"""Shared fixtures for the cardscan tests."""

import numpy as np
import pytest

from cardscan.utils.config import Config, PreprocessingConfig, SearchConfig


@pytest.fixture
def card_image():
    """Small landscape RGB photo stand-in (30 x 50)."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(30, 50, 3), dtype=np.uint8)


@pytest.fixture
def preprocessing_config():
    """Preprocessing with a small upscale target to keep tests fast."""
    return PreprocessingConfig(target_min_dim=40)


@pytest.fixture
def search_config():
    """Default search thresholds."""
    return SearchConfig()


@pytest.fixture
def fast_config(preprocessing_config):
    """Scanner configuration with the small upscale target."""
    return Config(preprocessing=preprocessing_config)
