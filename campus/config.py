"""
Platform configuration: defaults, an optional JSON file and environment overrides.
"""

import copy
import json
import os
from typing import Any, Dict, Optional

from .core.exceptions import ConfigurationError

DEFAULT_CONFIG: Dict[str, Any] = {
    "database_type": "sqlite",
    "database_config": {"database_path": ":memory:"},
    "log_level": "INFO",
    "rest_host": "0.0.0.0",
    "rest_port": 8000,
    "load_sample_data": True,
    "reports_dir": "reports",
    "max_notifications": 500,
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Build the platform configuration.

    Args:
        path: Optional JSON file whose keys override the defaults.
        environ: Environment mapping, ``os.environ`` when omitted.

    Returns:
        The merged configuration dict.

    Raises:
        ConfigurationError: If the file is missing or malformed, or an
            environment override has an invalid value.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    environ = os.environ if environ is None else environ

    if path:
        try:
            with open(path, 'r') as f:
                file_config = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Malformed configuration file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        _merge(config, file_config)

    if environ.get("CAMPUS_DATABASE_PATH"):
        config["database_config"]["database_path"] = environ["CAMPUS_DATABASE_PATH"]
    if environ.get("CAMPUS_REPORTS_DIR"):
        config["reports_dir"] = environ["CAMPUS_REPORTS_DIR"]
    if environ.get("CAMPUS_LOG_LEVEL"):
        config["log_level"] = environ["CAMPUS_LOG_LEVEL"].upper()
    if environ.get("CAMPUS_REST_PORT"):
        try:
            config["rest_port"] = int(environ["CAMPUS_REST_PORT"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid CAMPUS_REST_PORT: {environ['CAMPUS_REST_PORT']}") from e

    return config
