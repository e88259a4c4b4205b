"""
Utility modules for the ID card scanner.
"""

from .config import (
    Config,
    PreprocessingConfig,
    SearchConfig,
    RecognitionConfig,
    LoggingConfig,
    load_config,
    load_yaml,
    merge_configs,
    config_from_dict,
    DEFAULT_CONFIG
)
from .logger import (
    ScanProgress,
    setup_logger
)
from .io import (
    UnusableImageError,
    RawImage,
    decode_image,
    load_image,
    as_image_buffer,
    save_image,
    discover_images,
    load_profile_names,
    load_json,
    save_json,
    SUPPORTED_EXTENSIONS
)

__all__ = [
    # Config
    'Config',
    'PreprocessingConfig',
    'SearchConfig',
    'RecognitionConfig',
    'LoggingConfig',
    'load_config',
    'load_yaml',
    'merge_configs',
    'config_from_dict',
    'DEFAULT_CONFIG',
    # Logger
    'ScanProgress',
    'setup_logger',
    # IO
    'UnusableImageError',
    'RawImage',
    'decode_image',
    'load_image',
    'as_image_buffer',
    'save_image',
    'discover_images',
    'load_profile_names',
    'load_json',
    'save_json',
    'SUPPORTED_EXTENSIONS',
]
