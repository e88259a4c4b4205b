"""
I/O utilities for the ID card scanner.

Provides functions for decoding, loading, and saving card images and
the JSON/CSV records produced by batch runs. Everything that turns an
outside representation into an ImageBuffer goes through
``as_image_buffer`` so that undecodable or degenerate input is reported
in one way: ``UnusableImageError``.
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Union

import cv2
import numpy as np


# Supported image extensions
SUPPORTED_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff', '.webp'}

RawImage = Union[bytes, bytearray, memoryview, str, Path, np.ndarray]


class UnusableImageError(ValueError):
    """Raised when input cannot be turned into a non-empty image."""


def decode_image(data: Union[bytes, bytearray, memoryview]) -> np.ndarray:
    """
    Decode an encoded image (PNG, JPEG, ...) held in memory.

    Args:
        data: Encoded image bytes

    Returns:
        RGB image as uint8 array of shape (H, W, 3)

    Raises:
        UnusableImageError: If the bytes are empty or not a decodable image
    """
    buffer = np.frombuffer(bytes(data), dtype=np.uint8)
    if buffer.size == 0:
        raise UnusableImageError("Image data is empty")

    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise UnusableImageError("Image data could not be decoded")

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from disk as RGB.

    Args:
        path: Path to the image file

    Returns:
        RGB image as uint8 array

    Raises:
        FileNotFoundError: If image file does not exist
        UnusableImageError: If image cannot be decoded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        return decode_image(path.read_bytes())
    except UnusableImageError as e:
        raise UnusableImageError(f"Failed to load image {path}: {e}") from e


def _coerce_array(image: np.ndarray) -> np.ndarray:
    """Validate a decoded array and bring it to uint8 (H, W) or (H, W, 3)."""
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    elif image.ndim == 3 and image.shape[2] == 4:
        image = image[:, :, :3]

    if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] != 3):
        raise UnusableImageError(f"Unsupported image shape: {image.shape}")

    if image.shape[0] == 0 or image.shape[1] == 0:
        raise UnusableImageError(f"Image has a zero dimension: {image.shape}")

    if image.dtype == np.uint8:
        return image.copy()

    if image.dtype in [np.float32, np.float64] and image.max() <= 1.0:
        image = image * 255.0

    return np.clip(np.rint(image), 0, 255).astype(np.uint8)


def as_image_buffer(raw: RawImage) -> np.ndarray:
    """
    Turn any supported raw image representation into an ImageBuffer.

    Accepts encoded bytes, a path to an image file, or an already
    decoded array. The caller's array is never aliased.

    Args:
        raw: Encoded bytes, file path, or ndarray

    Returns:
        uint8 array of shape (H, W) or (H, W, 3)

    Raises:
        UnusableImageError: If the input is missing, undecodable or degenerate
    """
    if isinstance(raw, np.ndarray):
        return _coerce_array(raw)

    if isinstance(raw, (bytes, bytearray, memoryview)):
        return _coerce_array(decode_image(raw))

    if isinstance(raw, (str, Path)):
        try:
            return _coerce_array(load_image(raw))
        except FileNotFoundError as e:
            raise UnusableImageError(str(e)) from e

    raise UnusableImageError(f"Unsupported image input type: {type(raw).__name__}")


def save_image(image: np.ndarray, path: Union[str, Path]) -> None:
    """
    Save an ImageBuffer to disk.

    Args:
        image: RGB or single-channel uint8 image
        path: Output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

    cv2.imwrite(str(path), image)


def discover_images(directory: Union[str, Path], recursive: bool = False) -> List[Path]:
    """
    List image files in a directory.

    Args:
        directory: Directory to search
        recursive: Whether to descend into sub-directories

    Returns:
        Sorted list of image paths
    """
    directory = Path(directory)
    pattern = '**/*' if recursive else '*'

    return sorted(
        p for p in directory.glob(pattern)
        if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def load_profile_names(csv_path: Union[str, Path]) -> Dict[str, str]:
    """
    Load expected profile names for a batch of images.

    CSV format: image,profile_name (image is a file name relative to
    the scanned directory)

    Args:
        csv_path: Path to the CSV file

    Returns:
        Mapping of image file name to profile name
    """
    names = {}
    with open(csv_path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        for row in reader:
            names[row['image']] = row['profile_name']
    return names


def load_json(path: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Args:
        path: Path to JSON file

    Returns:
        Loaded data
    """
    with open(path, 'r') as f:
        return json.load(f)


def save_json(data: Any, path: Union[str, Path], indent: int = 2) -> None:
    """
    Save data to a JSON file.

    Args:
        data: Data to save
        path: Output path
        indent: JSON indentation level
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        json.dump(data, f, indent=indent, default=str)
