"""
volan — unit tests for synthesized accessors

File: tests/unit/compiler/test_accessor_behavior.py

Purpose
- Validate validated and constant accessors independently of full record construction.

What this test file should cover
- Accessor selection per field kind.
- Validation on set, rejection without mutation, and chained predicate failures.
- Backing store isolation per instance and sealing rules.
"""

from __future__ import annotations

import logging
import re

import pytest

from volan.compiler.accessors import (
    ConstantField,
    ValidatedField,
    backing_store,
    check_value,
    is_sealed,
    seal,
    synthesize,
)
from volan.compiler.resolver import resolve
from volan.errors import SealedError, ValidationError


def _holder(**attributes: object) -> type:
    return type("Holder", (), dict(attributes))


def test_synthesize_picks_accessor_per_kind() -> None:
    total = property(lambda self: 0)

    def describe(self: object) -> str:
        return "x"

    assert isinstance(synthesize(resolve("x", int)), ValidatedField)
    assert isinstance(synthesize(resolve("name", "text")), ConstantField)
    assert synthesize(resolve("total", total)) is total
    assert synthesize(resolve("describe", describe)) is describe


def test_validated_field_stores_accepted_values_privately() -> None:
    descriptor = resolve("x", int)
    holder_type = _holder(x=synthesize(descriptor))
    first = holder_type()
    second = holder_type()

    first.x = 1
    second.x = 2

    assert first.x == 1
    assert second.x == 2
    assert backing_store(first) == {"x": 1}
    assert "x" not in vars(first)
    assert backing_store(first) is not backing_store(second)


def test_backing_store_is_created_lazily() -> None:
    holder_type = _holder(x=synthesize(resolve("x", int)))
    holder = holder_type()

    assert backing_store(holder) is None
    assert holder.x is None
    holder.x = 3
    assert backing_store(holder) == {"x": 3}


def test_rejected_value_leaves_prior_value_intact() -> None:
    holder_type = _holder(x=synthesize(resolve("x", int)))
    holder = holder_type()
    holder.x = 5

    with pytest.raises(ValidationError) as excinfo:
        holder.x = "five"

    assert holder.x == 5
    assert excinfo.value.field == "x"
    assert excinfo.value.value == "five"
    assert excinfo.value.expected_type == "int"
    assert str(excinfo.value) == 'Validation failed for "x", value "five" is not a int'


def test_validated_field_reads_default_until_assigned() -> None:
    holder_type = _holder(num=synthesize(resolve("num", {"type": re.compile(r"\d+"), "value": 42})))
    holder = holder_type()

    assert holder.num == 42
    holder.num = 99
    assert holder.num == 99


def test_class_access_returns_accessor_for_introspection() -> None:
    accessor = synthesize(resolve("x", int))
    holder_type = _holder(x=accessor)

    assert holder_type.x is accessor
    assert accessor.descriptor.type_label == "int"


def test_raising_predicate_counts_as_rejection() -> None:
    def even(value: object) -> bool:
        return value % 2 == 0  # type: ignore[operator]

    descriptor = resolve("n", even)

    check_value(descriptor, 4)
    with pytest.raises(ValidationError) as excinfo:
        check_value(descriptor, "text")

    assert isinstance(excinfo.value.__cause__, TypeError)
    assert excinfo.value.expected_type == "even"


def test_rejections_are_logged_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    descriptor = resolve("x", int)

    with caplog.at_level(logging.DEBUG, logger="volan.compiler.accessors"):
        with pytest.raises(ValidationError):
            check_value(descriptor, "nope")

    record = next(item for item in caplog.records if item.name == "volan.compiler.accessors")
    assert record.field == "x"  # type: ignore[attr-defined]
    assert record.expected_type == "int"  # type: ignore[attr-defined]


def test_immutable_field_refuses_assignment_after_seal() -> None:
    holder_type = _holder(x=synthesize(resolve("x", {"type": int, "writable": False})))
    holder = holder_type()
    holder.x = 1
    seal(holder)

    assert is_sealed(holder)
    with pytest.raises(SealedError):
        holder.x = 2
    assert holder.x == 1


def test_mutable_field_keeps_validating_after_seal() -> None:
    holder_type = _holder(x=synthesize(resolve("x", int)))
    holder = holder_type()
    holder.x = 1
    seal(holder)

    holder.x = 2
    assert holder.x == 2
    with pytest.raises(ValidationError):
        holder.x = 2.5
    with pytest.raises(SealedError):
        del holder.x


def test_constant_field_rejects_every_assignment() -> None:
    holder_type = _holder(name=synthesize(resolve("name", "default text")))
    holder = holder_type()

    assert holder_type.name == "default text"
    assert holder.name == "default text"
    with pytest.raises(SealedError):
        holder.name = "other"
    with pytest.raises(AttributeError):
        del holder.name
