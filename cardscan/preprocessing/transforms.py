"""
Pixel buffer transforms for ID card images.

This module provides the primitive image operations the preprocessing
variants are composed from: grayscale conversion, upscaling, quarter-turn
rotation, contrast stretching, global (Otsu) and local (adaptive)
binarization, and polarity correction.

Every function takes an ImageBuffer (uint8 ndarray, (H, W) or (H, W, 3))
and returns a newly allocated one. Inputs are never written to, so a
pipeline of transforms is a plain chain of values. None of them raise on
well-formed input, including 1x1 and single-colour images.
"""

from typing import Tuple

import cv2
import numpy as np


# =============================================================================
# MATHEMATICAL BACKGROUND
# =============================================================================
#
# Card photos suffer from uneven lighting, glare and watermark bleed-through,
# so no single binarization works for every photo. The variants combine:
#
# 1. Contrast stretch: remap the [p2, p98] intensity range to [0, 1], then
#    apply the S-curve
#        s(v) = 2v²            for v < 0.5
#        s(v) = 1 - 2(1 - v)²  otherwise
#    which pushes mid-tones towards the extremes.
#
# 2. Otsu's method: for a threshold t splitting the histogram into a
#    background class (weight w_B, mean μ_B) and foreground class
#    (w_F, μ_F), choose
#        t* = argmax_t  w_B(t) · w_F(t) · (μ_B(t) - μ_F(t))²
#
# 3. Adaptive threshold: with the summed-area table
#        S(y, x) = Σ_{y' ≤ y, x' ≤ x} I(y', x')
#    the sum over any rectangle costs four lookups, so the local mean
#    over a block x block window is O(1) per pixel. A pixel is white
#    when I(y, x) > mean(y, x) - C.
# =============================================================================


ROTATIONS = (0, 90, 180, 270)

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

# Pixels below this intensity count as dark
DARK_LEVEL = 128


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert an RGB image to single-channel luminance.

    Uses the ITU-R BT.601 weights: Y = 0.299 R + 0.587 G + 0.114 B,
    rounded to the nearest integer.

    Args:
        image: RGB image (H, W, 3) or grayscale image (H, W)

    Returns:
        Grayscale uint8 image (H, W)
    """
    if image.ndim == 2:
        return image.copy()

    rgb = image[:, :, :3].astype(np.float64)
    gray = rgb[:, :, 0] * 0.299 + rgb[:, :, 1] * 0.587 + rgb[:, :, 2] * 0.114

    return np.clip(np.rint(gray), 0, 255).astype(np.uint8)


def rescale_to_min_dim(image: np.ndarray, target_min_dim: int = 1400) -> np.ndarray:
    """
    Upscale an image so that its short side reaches target_min_dim.

    Images whose short side is already large enough are returned
    unchanged (as a copy); this never downscales.

    Args:
        image: Input image
        target_min_dim: Desired minimum of width and height

    Returns:
        Rescaled image
    """
    h, w = image.shape[:2]
    min_dim = min(h, w)

    if min_dim >= target_min_dim:
        return image.copy()

    scale = target_min_dim / min_dim
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))

    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_CUBIC)


def rotate(image: np.ndarray, degrees: int) -> np.ndarray:
    """
    Rotate an image clockwise by a multiple of 90 degrees.

    Quarter turns are exact pixel permutations: 90 and 270 degrees swap
    width and height, and four 90 degree turns reproduce the input.

    Args:
        image: Input image
        degrees: Rotation angle, a multiple of 90

    Returns:
        Rotated image

    Raises:
        ValueError: If degrees is not a multiple of 90
    """
    if degrees % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")

    degrees %= 360
    if degrees == 0:
        return image.copy()

    return cv2.rotate(image, _ROTATE_CODES[degrees])


def percentile_bounds(gray: np.ndarray, low_pct: float = 0.02, high_pct: float = 0.98) -> Tuple[int, int]:
    """
    Find the intensities bounding the central part of the histogram.

    low is the highest intensity whose cumulative count is still below
    low_pct of all pixels (0 if none is), high likewise for high_pct
    (255 if none is).

    Args:
        gray: Grayscale image
        low_pct: Lower cumulative fraction
        high_pct: Upper cumulative fraction

    Returns:
        Tuple of (low, high) intensities
    """
    hist = np.bincount(gray.ravel(), minlength=256)
    cumulative = np.cumsum(hist)
    total = gray.size

    below_low = np.nonzero(cumulative < total * low_pct)[0]
    below_high = np.nonzero(cumulative < total * high_pct)[0]

    low = int(below_low[-1]) if below_low.size else 0
    high = int(below_high[-1]) if below_high.size else 255

    return low, high


def contrast_stretch(gray: np.ndarray) -> np.ndarray:
    """
    Stretch the 2nd-98th percentile range to full scale with an S-curve.

    A degenerate range (high <= low) is treated as a range of 1.

    Args:
        gray: Grayscale image

    Returns:
        Contrast-enhanced grayscale image
    """
    low, high = percentile_bounds(gray)
    value_range = max(high - low, 1)

    val = np.clip((gray.astype(np.float64) - low) / value_range, 0.0, 1.0)
    curved = np.where(val < 0.5, 2.0 * val * val, 1.0 - 2.0 * (1.0 - val) ** 2)

    return np.clip(np.rint(curved * 255.0), 0, 255).astype(np.uint8)


def otsu_threshold_value(gray: np.ndarray) -> int:
    """
    Select a global threshold with Otsu's method.

    Ties keep the lowest threshold. Images with a single intensity have
    no valid split and get the mid-level 128.

    Args:
        gray: Grayscale image

    Returns:
        Threshold t; pixels strictly above t are foreground
    """
    hist = np.bincount(gray.ravel(), minlength=256).astype(np.float64)
    levels = np.arange(256, dtype=np.float64)
    total = float(gray.size)

    w_b = np.cumsum(hist)
    w_f = total - w_b
    sum_b = np.cumsum(levels * hist)
    sum_all = sum_b[-1]

    valid = (w_b > 0) & (w_f > 0)
    if not np.any(valid):
        return 128

    variance = np.full(256, -1.0)
    m_b = sum_b[valid] / w_b[valid]
    m_f = (sum_all - sum_b[valid]) / w_f[valid]
    variance[valid] = w_b[valid] * w_f[valid] * (m_b - m_f) ** 2

    if variance.max() <= 0:
        return 128

    return int(np.argmax(variance))


def otsu_threshold(gray: np.ndarray) -> np.ndarray:
    """
    Binarize an image at its Otsu threshold.

    Args:
        gray: Grayscale image

    Returns:
        Binary image with values in {0, 255}
    """
    threshold = otsu_threshold_value(gray)
    return np.where(gray > threshold, 255, 0).astype(np.uint8)


def integral_image(gray: np.ndarray) -> np.ndarray:
    """
    Build a zero-padded summed-area table.

    S[y + 1, x + 1] holds the sum of gray[:y + 1, :x + 1]; the extra
    leading row and column of zeros remove the border special cases
    from rectangle queries.

    Args:
        gray: Grayscale image (H, W)

    Returns:
        int64 array of shape (H + 1, W + 1)
    """
    h, w = gray.shape
    table = np.zeros((h + 1, w + 1), dtype=np.int64)
    table[1:, 1:] = np.cumsum(np.cumsum(gray.astype(np.int64), axis=0), axis=1)
    return table


def _window_bounds(length: int, half: int) -> Tuple[np.ndarray, np.ndarray]:
    """Clamped inclusive [start, end] of the window centered on each index."""
    idx = np.arange(length)
    return np.maximum(idx - half, 0), np.minimum(idx + half, length - 1)


def adaptive_threshold(gray: np.ndarray, block_size: int = 25, c: float = 10.0) -> np.ndarray:
    """
    Binarize each pixel against the mean of its local neighbourhood.

    The window is block_size x block_size centered on the pixel and
    clamped at the image borders; the mean uses the clamped area.

    Args:
        gray: Grayscale image
        block_size: Side of the averaging window
        c: Offset subtracted from the local mean

    Returns:
        Binary image with values in {0, 255}

    Raises:
        ValueError: If block_size is not positive
    """
    if block_size < 1:
        raise ValueError(f"block_size must be positive, got {block_size}")

    h, w = gray.shape
    half = block_size // 2
    table = integral_image(gray)

    y1, y2 = _window_bounds(h, half)
    x1, x2 = _window_bounds(w, half)
    y1, y2 = y1[:, None], y2[:, None]
    x1, x2 = x1[None, :], x2[None, :]

    window_sum = (
        table[y2 + 1, x2 + 1]
        - table[y1, x2 + 1]
        - table[y2 + 1, x1]
        + table[y1, x1]
    )
    area = (y2 - y1 + 1) * (x2 - x1 + 1)
    mean = window_sum / area

    return np.where(gray > mean - c, 255, 0).astype(np.uint8)


def dark_ratio(image: np.ndarray) -> float:
    """
    Fraction of pixels darker than mid-intensity.

    Args:
        image: Grayscale or RGB image (the first channel is used)

    Returns:
        Ratio in [0, 1]
    """
    channel = image if image.ndim == 2 else image[:, :, 0]
    return float(np.count_nonzero(channel < DARK_LEVEL)) / channel.size


def is_mostly_dark(image: np.ndarray, ratio: float = 0.6) -> bool:
    """
    Check whether an image is predominantly dark.

    Args:
        image: Input image
        ratio: Dark fraction above which the image counts as dark

    Returns:
        True if more than ratio of the pixels are dark
    """
    return dark_ratio(image) > ratio


def invert(image: np.ndarray) -> np.ndarray:
    """Return the photographic negative of an image."""
    return (255 - image).astype(np.uint8)


def correct_polarity(binary: np.ndarray, ratio: float = 0.6) -> np.ndarray:
    """
    Ensure dark text on a light background.

    Binarization of light-on-dark regions yields mostly black output,
    which recognizes poorly; such images are inverted.

    Args:
        binary: Binarized image
        ratio: Dark fraction that triggers inversion

    Returns:
        Polarity-corrected image
    """
    if is_mostly_dark(binary, ratio):
        return invert(binary)
    return binary.copy()
