"""Stable constants shared across the compiler, config, and observability layers."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Diagnostic text.
VALIDATION_MESSAGE_TEMPLATE: Final[str] = (
    'Validation failed for "{field}", value "{value}" is not a {expected_type}'
)
UNSET_LABEL: Final[str] = "undefined"
ANONYMOUS_PREDICATE_LABEL: Final[str] = "anonymous"
ACCEPT_ANY_LABEL: Final[str] = "any"
PATTERN_LABEL_TEMPLATE: Final[str] = 'value matching "{pattern}"'

# Classes checked by type tag rather than nominal membership.
PRIMITIVE_TYPE_TAGS: Final[tuple[type, ...]] = (bool, int, float, complex, str, bytes)

# Keys accepted by mapping-form field descriptors.
DESCRIPTOR_TYPE_KEY: Final[str] = "type"
DESCRIPTOR_KEYS: Final[frozenset[str]] = frozenset(
    {
        "type",
        "value",
        "default",
        "default_factory",
        "writable",
        "mutable",
        "required",
    }
)

# Per-class and per-instance bookkeeping attributes.
RECORD_FIELDS_ATTR: Final[str] = "__record_fields__"
RECORD_OWN_FIELDS_ATTR: Final[str] = "__record_own_fields__"
RECORD_PARENT_ATTR: Final[str] = "__record_parent__"
RECORD_NATIVE_ATTR: Final[str] = "__record_native__"
RECORD_BUILD_ARGS_ATTR: Final[str] = "__record_build_args__"
SUPER_ATTR: Final[str] = "__super__"
INSTANCE_STORE_ATTR: Final[str] = "__record_values__"
INSTANCE_SEALED_ATTR: Final[str] = "__record_sealed__"

__all__ = [
    "ACCEPT_ANY_LABEL",
    "ANONYMOUS_PREDICATE_LABEL",
    "CONFIG_SCHEMA_VERSION",
    "DESCRIPTOR_KEYS",
    "DESCRIPTOR_TYPE_KEY",
    "INSTANCE_SEALED_ATTR",
    "INSTANCE_STORE_ATTR",
    "PATTERN_LABEL_TEMPLATE",
    "PRIMITIVE_TYPE_TAGS",
    "RECORD_BUILD_ARGS_ATTR",
    "RECORD_FIELDS_ATTR",
    "RECORD_NATIVE_ATTR",
    "RECORD_OWN_FIELDS_ATTR",
    "RECORD_PARENT_ATTR",
    "SUPER_ATTR",
    "UNSET_LABEL",
    "VALIDATION_MESSAGE_TEMPLATE",
]
