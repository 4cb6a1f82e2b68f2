"""
volan — configuration schema and validation.

File: src/volan/config/schema.py

Purpose
- Define the built-in defaults for ``volan.toml`` and validate effective settings.

What is included in this file
- Typed shapes of the ``meta``, ``records`` and ``observability`` sections.
- A per-key rule table; each rule normalizes a raw value or reports why it cannot.
- Deep merge used by the loader to layer sources.

Functional requirements
- Report every problem at once as structured issues (dotted path + message).
- Reject unknown sections and keys.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from volan.constants import CONFIG_SCHEMA_VERSION

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")


class MetaConfig(TypedDict):
    schema_version: int


class RecordsConfig(TypedDict):
    strict_descriptors: bool
    numeric_tower: bool
    mutable_by_default: bool


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]
    redact_values: bool


class VolanConfig(TypedDict):
    meta: MetaConfig
    records: RecordsConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[VolanConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "records": {
        "strict_descriptors": False,
        "numeric_tower": True,
        "mutable_by_default": True,
    },
    "observability": {
        "log_level": "WARNING",
        "log_format": "json",
        "redact_values": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when the effective config does not validate."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


# A rule returns (normalized value, None) or (None, problem).
_Rule = Callable[[object], tuple[object, str | None]]


def _boolean(value: object) -> tuple[object, str | None]:
    if isinstance(value, bool):
        return value, None
    return None, f"expected boolean, got {type(value).__name__}"


def _choice(allowed: tuple[str, ...], *, fold_case: bool = False) -> _Rule:
    def rule(value: object) -> tuple[object, str | None]:
        if not isinstance(value, str):
            return None, f"expected string, got {type(value).__name__}"
        candidate = value.strip().upper() if fold_case else value.strip()
        if candidate not in allowed:
            return None, f"invalid value {value!r}; expected one of: {', '.join(sorted(allowed))}"
        return candidate, None

    return rule


def _schema_version(value: object) -> tuple[object, str | None]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None, f"expected integer, got {type(value).__name__}"
    if value != CONFIG_SCHEMA_VERSION:
        return None, migration_guidance(value)
    return value, None


_RULES: Final[dict[str, dict[str, _Rule]]] = {
    "meta": {"schema_version": _schema_version},
    "records": {
        "strict_descriptors": _boolean,
        "numeric_tower": _boolean,
        "mutable_by_default": _boolean,
    },
    "observability": {
        "log_level": _choice(LOG_LEVELS, fold_case=True),
        "log_format": _choice(LOG_FORMATS),
        "redact_values": _boolean,
    },
}


def default_config() -> VolanConfig:
    """Return a fresh copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade volan.toml to the current schema"
        )
    return (
        f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
        "upgrade the volan package"
    )


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; nested mappings merge key by key."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        elif isinstance(value, Mapping):
            merged[key] = merge_config({}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Mapping[str, object]) -> tuple[ConfigValidationIssue, ...]:
    """Return every issue found in ``config``; an empty tuple means it is valid."""

    return _normalize(config)[1]


def assert_valid_config(config: Mapping[str, object]) -> dict[str, Any]:
    """Return the normalized config or raise ``ConfigValidationError``."""

    normalized, issues = _normalize(config)
    if issues:
        raise ConfigValidationError(issues)
    return normalized


def _normalize(
    config: Mapping[str, object],
) -> tuple[dict[str, Any], tuple[ConfigValidationIssue, ...]]:
    issues: list[ConfigValidationIssue] = []
    normalized: dict[str, Any] = {}

    for section in sorted(set(config) - set(_RULES)):
        issues.append(ConfigValidationIssue(str(section), "unknown section"))

    for section, rules in _RULES.items():
        payload = config.get(section)
        if payload is None:
            issues.append(ConfigValidationIssue(section, "missing required section"))
            continue
        if not isinstance(payload, Mapping):
            issues.append(
                ConfigValidationIssue(section, f"expected table, got {type(payload).__name__}")
            )
            continue

        out: dict[str, Any] = {}
        for key in sorted(set(payload) - set(rules)):
            issues.append(ConfigValidationIssue(f"{section}.{key}", "unknown field"))
        for key, rule in rules.items():
            path = f"{section}.{key}"
            if key not in payload:
                issues.append(ConfigValidationIssue(path, "missing required field"))
                continue
            value, problem = rule(payload[key])
            if problem is not None:
                issues.append(ConfigValidationIssue(path, problem))
            else:
                out[key] = value
        normalized[section] = out

    return normalized, tuple(issues)


__all__ = [
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "ObservabilityConfig",
    "RecordsConfig",
    "VolanConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
