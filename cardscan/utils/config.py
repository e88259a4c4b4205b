"""
Configuration management for the ID card scanner.

This module provides utilities for loading, validating, and accessing
configuration parameters from YAML files. Every empirically tuned
constant of the pipeline (search thresholds, binarization parameters,
institution keywords) lives here rather than in the algorithms.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import yaml


@dataclass
class PreprocessingConfig:
    """Configuration for the preprocessing variants."""
    target_min_dim: int = 1400
    adaptive_block_size: int = 31
    adaptive_c: float = 12.0
    adaptive_small_block_size: int = 15
    adaptive_small_c: float = 8.0
    dark_ratio: float = 0.6


@dataclass
class SearchConfig:
    """
    Configuration for the rotation x variant search.

    Attributes:
        rotations: Rotation hypotheses in the order they are tried
        strong_threshold: Score that ends the whole search immediately
        good_threshold: Score that skips the remaining rotations
        min_viable_score: Best scores below this mean no card was found
    """
    rotations: Tuple[int, ...] = (0, 90, 270, 180)
    strong_threshold: int = 100
    good_threshold: int = 70
    min_viable_score: int = 5


@dataclass
class RecognitionConfig:
    """
    Configuration for the text recognition backend.

    Attributes:
        backend: Registered recognizer id
        options: Keyword arguments for the backend's factory
    """
    backend: str = "tesseract"
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_dir: Optional[str] = None
    console_output: bool = True


@dataclass
class Config:
    """
    Main configuration container for the scanner.

    Attributes:
        preprocessing: Binarization and rescale settings
        search: Early-exit thresholds and rotation order
        recognition: Recognition backend settings
        logging: Logging configuration
        institution: Overrides applied on top of the default card profile
    """
    preprocessing: PreprocessingConfig = field(default_factory=PreprocessingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    institution: Dict[str, Any] = field(default_factory=dict)


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the configuration (empty for an empty file)

    Raises:
        FileNotFoundError: If the configuration file does not exist
        yaml.YAMLError: If the YAML file is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    The override dictionary values take precedence over base values.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def config_from_dict(config_dict: Dict[str, Any]) -> Config:
    """
    Build a Config from a plain dictionary, filling in defaults.

    Args:
        config_dict: Parsed configuration (e.g. from YAML)

    Returns:
        Config object
    """
    config_dict = dict(config_dict)
    preprocessing_dict = config_dict.pop('preprocessing', None) or {}
    search_dict = config_dict.pop('search', None) or {}
    recognition_dict = config_dict.pop('recognition', None) or {}
    logging_dict = config_dict.pop('logging', None) or {}
    institution_dict = config_dict.pop('institution', None) or {}

    defaults = PreprocessingConfig()
    preprocessing_config = PreprocessingConfig(
        target_min_dim=int(preprocessing_dict.get('target_min_dim', defaults.target_min_dim)),
        adaptive_block_size=int(preprocessing_dict.get('adaptive_block_size', defaults.adaptive_block_size)),
        adaptive_c=float(preprocessing_dict.get('adaptive_c', defaults.adaptive_c)),
        adaptive_small_block_size=int(
            preprocessing_dict.get('adaptive_small_block_size', defaults.adaptive_small_block_size)
        ),
        adaptive_small_c=float(preprocessing_dict.get('adaptive_small_c', defaults.adaptive_small_c)),
        dark_ratio=float(preprocessing_dict.get('dark_ratio', defaults.dark_ratio))
    )

    search_defaults = SearchConfig()
    search_config = SearchConfig(
        rotations=tuple(int(r) for r in search_dict.get('rotations', search_defaults.rotations)),
        strong_threshold=int(search_dict.get('strong_threshold', search_defaults.strong_threshold)),
        good_threshold=int(search_dict.get('good_threshold', search_defaults.good_threshold)),
        min_viable_score=int(search_dict.get('min_viable_score', search_defaults.min_viable_score))
    )

    recognition_config = RecognitionConfig(
        backend=recognition_dict.get('backend', 'tesseract'),
        options=dict(recognition_dict.get('options') or {})
    )

    logging_config = LoggingConfig(
        level=logging_dict.get('level', 'INFO'),
        log_dir=logging_dict.get('log_dir'),
        console_output=logging_dict.get('console_output', True)
    )

    return Config(
        preprocessing=preprocessing_config,
        search=search_config,
        recognition=recognition_config,
        logging=logging_config,
        institution=institution_dict
    )


def load_config(
    config_path: Union[str, Path],
    base_config_path: Optional[Union[str, Path]] = None
) -> Config:
    """
    Load configuration from YAML files.

    Optionally merges with a base configuration file.

    Args:
        config_path: Path to the main configuration file
        base_config_path: Optional path to base configuration to merge with

    Returns:
        Config object with loaded settings
    """
    config_dict = load_yaml(config_path)

    if base_config_path is not None:
        base_dict = load_yaml(base_config_path)
        config_dict = merge_configs(base_dict, config_dict)

    return config_from_dict(config_dict)


# Default configuration instance
DEFAULT_CONFIG = Config()
