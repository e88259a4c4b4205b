"""
Image preprocessing for ID card recognition.
"""

from .transforms import (
    ROTATIONS,
    to_grayscale,
    rescale_to_min_dim,
    rotate,
    percentile_bounds,
    contrast_stretch,
    otsu_threshold_value,
    otsu_threshold,
    integral_image,
    adaptive_threshold,
    dark_ratio,
    is_mostly_dark,
    invert,
    correct_polarity
)
from .variants import (
    PreprocessingVariant,
    prepare_base,
    build_variants,
    generate_variants
)

__all__ = [
    # Transforms
    'ROTATIONS',
    'to_grayscale',
    'rescale_to_min_dim',
    'rotate',
    'percentile_bounds',
    'contrast_stretch',
    'otsu_threshold_value',
    'otsu_threshold',
    'integral_image',
    'adaptive_threshold',
    'dark_ratio',
    'is_mostly_dark',
    'invert',
    'correct_polarity',
    # Variants
    'PreprocessingVariant',
    'prepare_base',
    'build_variants',
    'generate_variants',
]
