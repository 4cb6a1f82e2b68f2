"""
volan — runtime config loader.

File: src/volan/config/loader.py

Purpose
- Produce the effective config from four layers, lowest first: built-in defaults,
  ``volan.toml``, ``VOLAN_<SECTION>_<KEY>`` environment variables, explicit overrides.

Functional requirements
- A missing ``volan.toml`` in the working directory is not an error; a missing explicit path is.
- Environment values are coerced to the type of the default they replace.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from volan.config.schema import DEFAULT_CONFIG, assert_valid_config, default_config, merge_config

DEFAULT_CONFIG_FILE: Final[str] = "volan.toml"
ENV_PREFIX: Final[str] = "VOLAN_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when a config source cannot be read or coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    ``overrides`` maps dotted paths (``"records.numeric_tower"``) to values.
    ``environ`` defaults to ``os.environ``.
    """

    if config_path is None:
        from_file = _read_toml(Path.cwd() / DEFAULT_CONFIG_FILE, required=False)
    else:
        from_file = _read_toml(Path(config_path).expanduser(), required=True)

    layers = (
        from_file,
        _environment_layer(os.environ if environ is None else environ),
        _override_layer(overrides or {}),
    )
    merged: dict[str, Any] = default_config()
    for layer in layers:
        merged = merge_config(merged, layer)
    return assert_valid_config(merged)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _environment_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for section, keys in DEFAULT_CONFIG.items():
        for key, default in keys.items():
            name = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
            raw = environ.get(name)
            if raw is not None:
                layer.setdefault(section, {})[key] = _coerce(name, raw.strip(), default)
    return layer


def _coerce(name: str, raw: str, default: object) -> object:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise ConfigLoadError(f"{name} must be a boolean (true/false/1/0/yes/no/on/off)")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigLoadError(f"{name} must be an integer") from exc
    return raw


def _override_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for dotted, value in overrides.items():
        section, _, key = dotted.partition(".")
        if not section or not key or "." in key:
            raise ConfigLoadError(f"invalid override key {dotted!r}; expected 'section.key'")
        layer.setdefault(section, {})[key] = value
    return layer


__all__ = ["ConfigLoadError", "DEFAULT_CONFIG_FILE", "ENV_PREFIX", "load_config"]
