"""
Preprocessing variants for multi-pass recognition.

A variant is a named recipe that turns the grayscale, upscaled base
image into one input for the recognizer. The variants are ordered by how
often they succeed on real card photos, so that the search can stop
after the first good one.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from cardscan.preprocessing.transforms import (
    adaptive_threshold,
    contrast_stretch,
    correct_polarity,
    otsu_threshold,
    rescale_to_min_dim,
    to_grayscale,
)
from cardscan.utils.config import PreprocessingConfig


@dataclass(frozen=True)
class PreprocessingVariant:
    """
    A named preprocessing recipe.

    Attributes:
        name: Identifier used in logs and results
        description: What kind of photo the recipe is meant for
        transform: Function from the grayscale base to the recognizer input
        binary: Whether the output is restricted to {0, 255}
    """
    name: str
    description: str
    transform: Callable[[np.ndarray], np.ndarray]
    binary: bool = True

    def apply(self, base: np.ndarray) -> np.ndarray:
        """Run the recipe on a grayscale base image."""
        return self.transform(base)


def prepare_base(image: np.ndarray, target_min_dim: int = 1400) -> np.ndarray:
    """
    Build the grayscale, upscaled base image the variants start from.

    Args:
        image: Decoded RGB or grayscale image
        target_min_dim: Minimum short side after upscaling

    Returns:
        Grayscale uint8 image
    """
    return rescale_to_min_dim(to_grayscale(image), target_min_dim)


def build_variants(config: Optional[PreprocessingConfig] = None) -> List[PreprocessingVariant]:
    """
    Create the ordered list of preprocessing variants.

    Order:
    1. Adaptive threshold, large block (watermarks, uneven light)
    2. Contrast stretch + Otsu (faded, low-contrast text)
    3. Contrast stretch only, left as grayscale
    4. Adaptive threshold, small block (small, dense text)

    Args:
        config: Preprocessing parameters, defaults if None

    Returns:
        List of variants in priority order
    """
    config = config or PreprocessingConfig()
    ratio = config.dark_ratio

    def adaptive_large(gray: np.ndarray) -> np.ndarray:
        binary = adaptive_threshold(gray, config.adaptive_block_size, config.adaptive_c)
        return correct_polarity(binary, ratio)

    def contrast_otsu(gray: np.ndarray) -> np.ndarray:
        return correct_polarity(otsu_threshold(contrast_stretch(gray)), ratio)

    def adaptive_small(gray: np.ndarray) -> np.ndarray:
        binary = adaptive_threshold(gray, config.adaptive_small_block_size, config.adaptive_small_c)
        return correct_polarity(binary, ratio)

    return [
        PreprocessingVariant(
            name="adaptive-threshold-large-block",
            description="Local mean threshold; robust to watermarks and uneven lighting",
            transform=adaptive_large,
        ),
        PreprocessingVariant(
            name="contrast-otsu",
            description="Contrast stretch then global Otsu threshold; robust to faded text",
            transform=contrast_otsu,
        ),
        PreprocessingVariant(
            name="enhanced-grayscale",
            description="Contrast stretch only",
            transform=contrast_stretch,
            binary=False,
        ),
        PreprocessingVariant(
            name="adaptive-threshold-small-block",
            description="Local mean threshold with a small window; robust to small text",
            transform=adaptive_small,
        ),
    ]


def generate_variants(
    base: np.ndarray,
    variants: Optional[List[PreprocessingVariant]] = None
) -> Iterator[Tuple[PreprocessingVariant, np.ndarray]]:
    """
    Lazily apply each variant to the base image.

    Variants are only computed when the consumer asks for them, so a
    search that stops early never pays for the remaining recipes.

    Args:
        base: Grayscale base image
        variants: Variants to apply, defaults from build_variants()

    Yields:
        Tuples of (variant, processed image)
    """
    for variant in variants if variants is not None else build_variants():
        yield variant, variant.apply(base)
