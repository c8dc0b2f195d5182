"""
Configuration handling for the IPTC writer.
"""

import json
import os
import re
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any


DEFAULT_ANNOTATION_API_URL = "http://localhost:3000/api/gemini/generate"
DEFAULT_WRITER_API_URL = "http://localhost:3000/api/iptc/write"


@dataclass
class AnnotationServiceConfig:
    """AI annotation service configuration."""
    api_url: str = DEFAULT_ANNOTATION_API_URL
    timeout: float = 120.0
    max_batch_files: int = 50  # Provider-side limit, independent of max_entries
    max_tags: int = 5


@dataclass
class WriterServiceConfig:
    """Metadata write service configuration."""
    api_url: str = DEFAULT_WRITER_API_URL
    timeout: float = 60.0
    download_suffix: str = "-iptc.jpg"


@dataclass
class AppConfig:
    """Main application configuration."""
    annotation: AnnotationServiceConfig = field(default_factory=AnnotationServiceConfig)
    writer: WriterServiceConfig = field(default_factory=WriterServiceConfig)
    max_entries: int = 50
    output_dir: str = "output"
    archive_prefix: str = "iptc-batch"
    preview_max_resolution: int = 256
    log_level: str = "INFO"
    log_file: Optional[str] = None
    debug_mode: bool = False
    memory_limit_mb: int = 1024


# Flat JSON key -> (section, attribute)
_SECTION_KEYS = {
    'annotation_api_url': ('annotation', 'api_url'),
    'annotation_timeout': ('annotation', 'timeout'),
    'annotation_max_batch_files': ('annotation', 'max_batch_files'),
    'annotation_max_tags': ('annotation', 'max_tags'),
    'writer_api_url': ('writer', 'api_url'),
    'writer_timeout': ('writer', 'timeout'),
    'writer_download_suffix': ('writer', 'download_suffix'),
}

_POSITIVE_INT_KEYS = ('max_entries', 'annotation_max_batch_files', 'annotation_max_tags')


def _substitute_env_vars(value: Any) -> Any:
    """
    Substitute environment variables in string values.

    Args:
        value: Value to process for environment variables

    Returns:
        Value with environment variables substituted
    """
    if not isinstance(value, str):
        return value

    # Pattern to match ${ENV_VAR} syntax
    pattern = r'\${([^}]+)}'

    def replace_env_var(match):
        env_var = match.group(1)
        env_value = os.environ.get(env_var)
        if env_value is None:
            print(f"Warning: Environment variable {env_var} not found")
            return ""
        return env_value

    return re.sub(pattern, replace_env_var, value)


def _process_config_dict(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Process a configuration dictionary to substitute environment variables.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Processed dictionary with environment variables substituted
    """
    result = {}

    for key, value in config_dict.items():
        if isinstance(value, dict):
            result[key] = _process_config_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _process_config_dict(item) if isinstance(item, dict) else _substitute_env_vars(item)
                for item in value
            ]
        else:
            result[key] = _substitute_env_vars(value)

    return result


def _validate(config_dict: Dict[str, Any]) -> None:
    """Reject values that would break the entry limits."""
    for key in _POSITIVE_INT_KEYS:
        if key in config_dict:
            value = config_dict[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"Configuration field {key} must be a positive integer, got {value!r}")

    for key in ('annotation_api_url', 'writer_api_url'):
        if key in config_dict and not str(config_dict[key]).strip():
            raise ValueError(f"Configuration field {key} must not be empty")


def config_from_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from a flat configuration dictionary.

    Args:
        config_dict: Flat dictionary as stored in the JSON file

    Returns:
        AppConfig object

    Raises:
        ValueError: If the configuration contains unknown or invalid fields
    """
    config_dict = _process_config_dict(dict(config_dict))
    _validate(config_dict)

    annotation = AnnotationServiceConfig()
    writer = WriterServiceConfig()
    sections = {'annotation': annotation, 'writer': writer}

    for key, (section, attribute) in _SECTION_KEYS.items():
        if key in config_dict:
            setattr(sections[section], attribute, config_dict.pop(key))

    try:
        return AppConfig(annotation=annotation, writer=writer, **config_dict)
    except TypeError as e:
        raise ValueError(f"Invalid configuration: {str(e)}")


def load_config(config_path: str) -> AppConfig:
    """
    Load and validate configuration from JSON file.

    Args:
        config_path: Path to the configuration JSON file

    Returns:
        AppConfig object

    Raises:
        ValueError: If the configuration is invalid
        RuntimeError: If the configuration file cannot be loaded
    """
    config_path = os.path.abspath(os.path.expanduser(config_path))

    try:
        with open(config_path, 'r', encoding='utf-8') as cfg:
            config_dict = json.load(cfg)
    except (json.JSONDecodeError, IOError) as e:
        raise RuntimeError(f"Failed to load configuration from {config_path}: {str(e)}")

    if not isinstance(config_dict, dict):
        raise ValueError("Configuration root must be a JSON object")

    return config_from_dict(config_dict)


def save_config(config: AppConfig, config_path: str) -> None:
    """
    Save configuration to JSON file.

    Args:
        config: AppConfig object
        config_path: Path to save the configuration

    Raises:
        RuntimeError: If the configuration cannot be saved
    """
    try:
        config_dict = asdict(config)
        sections = {
            'annotation': config_dict.pop('annotation', {}),
            'writer': config_dict.pop('writer', {}),
        }

        for key, (section, attribute) in _SECTION_KEYS.items():
            config_dict[key] = sections[section].get(attribute)

        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(config_dict, f, indent=2)
    except (IOError, TypeError) as e:
        raise RuntimeError(f"Failed to save configuration: {str(e)}")
