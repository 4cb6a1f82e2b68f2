"""Compiler options derived from the ``[records]`` configuration section."""

from __future__ import annotations

import functools
from collections.abc import Mapping
from dataclasses import dataclass

from volan.config.loader import load_config


@dataclass(frozen=True, slots=True)
class CompilerOptions:
    """Knobs that change how declarations are classified and checked."""

    strict_descriptors: bool = False
    numeric_tower: bool = True
    mutable_by_default: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> CompilerOptions:
        records = config.get("records")
        if not isinstance(records, Mapping):
            return cls()
        return cls(
            strict_descriptors=bool(records.get("strict_descriptors", False)),
            numeric_tower=bool(records.get("numeric_tower", True)),
            mutable_by_default=bool(records.get("mutable_by_default", True)),
        )


@functools.lru_cache(maxsize=1)
def default_options() -> CompilerOptions:
    """Load effective config once and derive the process-wide compiler options."""

    return CompilerOptions.from_config(load_config())


def clear_default_options() -> None:
    """Forget cached options so the next compile reloads configuration."""

    default_options.cache_clear()


__all__ = ["CompilerOptions", "clear_default_options", "default_options"]
