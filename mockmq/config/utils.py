"""
Configuration utilities for the Mock MQ Manager.

This module loads imposter definitions from JSON or YAML files and checks
settings for inconsistencies that are logged at startup.
"""

import json
import yaml
from typing import Dict, Any, Union
from pathlib import Path

from .settings import Settings


def load_config_from_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a file (JSON or YAML).

    Args:
        file_path: Path to the configuration file

    Returns:
        Dictionary containing configuration data

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file format is not supported or invalid
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() in ['.json']:
                return json.load(f)
            elif file_path.suffix.lower() in ['.yml', '.yaml']:
                return yaml.safe_load(f) or {}
            else:
                raise ValueError(f"Unsupported file format: {file_path.suffix}")
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid configuration file format: {e}")


def load_imposter_definitions(file_path: Union[str, Path]) -> list:
    """
    Load imposter definitions from a configuration file.

    The file holds either a single imposter document, a list of them, or an
    object with an ``imposters`` list (the format written by ``mb save``).
    """
    data = load_config_from_file(file_path)

    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("imposters"), list):
        return data["imposters"]
    if isinstance(data, dict) and data:
        return [data]
    return []


def validate_configuration(settings: Settings) -> Dict[str, Any]:
    """
    Validate configuration settings and return validation results.

    Returns:
        Dictionary with ``valid``, ``errors`` and ``warnings`` keys
    """
    errors = []
    warnings = []

    mq = settings.mq
    if len(set(mq.default_queues)) != len(mq.default_queues):
        errors.append("Default queue names must be unique")
    if mq.default_queue not in mq.default_queues:
        warnings.append(
            f"Default operation queue '{mq.default_queue}' is not one of the default queues"
        )
    if mq.processing_timeout_ms < mq.poll_interval_ms:
        warnings.append("Processing timeout is shorter than the poll interval")

    if not settings.storage.enabled:
        warnings.append("Snapshot persistence is disabled; queue state is lost on restart")

    if settings.is_production() and settings.debug:
        warnings.append("Debug mode is enabled in production environment")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings
    }
