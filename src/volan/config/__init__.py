"""
volan config package public API.

File: src/volan/config/__init__.py

Purpose
- Export config loading/validation entrypoints and public error types.
"""

from volan.config.loader import DEFAULT_CONFIG_FILE, ENV_PREFIX, ConfigLoadError, load_config
from volan.config.schema import (
    DEFAULT_CONFIG,
    LOG_FORMATS,
    LOG_LEVELS,
    ConfigValidationError,
    ConfigValidationIssue,
    VolanConfig,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

__all__ = [
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "VolanConfig",
    "assert_valid_config",
    "default_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
