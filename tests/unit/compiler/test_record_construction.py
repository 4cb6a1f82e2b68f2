"""
volan — unit tests for record types and construction

File: tests/unit/compiler/test_record_construction.py

Purpose
- Validate record compilation (``create``/``extend``/class statements), the construction
  chain, calling conventions, and sealing.

What this test file should cover
- Reference scenarios: numeric point, pattern field, constant default, extension,
  descriptor with default.
- Required/optional semantics and the "undefined" diagnostic.
- Extension chains, overrides, application order, and ``__super__``.
- Plain-class parents, nested record types, positional hooks.
- Structural errors surfaced as ``SchemaError``/``SealedError``/``TypeError``.
"""

from __future__ import annotations

import copy
import dataclasses
import re

import pytest

from volan import (
    UNSET,
    CompilerOptions,
    Record,
    RecordType,
    SchemaError,
    SealedError,
    ValidationError,
    create,
    extend,
    field,
    fields,
    is_sealed,
)


@pytest.fixture()
def point_type() -> RecordType:
    return create({"x": int, "y": int}, name="Point")


def _field_names(record: object) -> list[str]:
    return [descriptor.name for descriptor in fields(record)]


# --- reference scenarios -------------------------------------------------------------


def test_point_accepts_numbers_and_rejects_text(point_type: RecordType) -> None:
    point = point_type({"x": 1, "y": 2})

    assert point.x == 1
    assert point.y == 2

    with pytest.raises(ValidationError) as excinfo:
        point_type({"x": "a", "y": 2})
    assert excinfo.value.field == "x"
    assert excinfo.value.expected_type == "int"


def test_pattern_field_matches_stringified_value() -> None:
    numeric = create({"num": re.compile(r"^\d+$")})

    assert numeric({"num": 1}).num == 1
    with pytest.raises(ValidationError, match="value matching"):
        numeric({"num": 1.2})


def test_constant_default_is_applied() -> None:
    named = create({"name": "default text"})

    assert named({}).name == "default text"


def test_extension_exposes_parent_and_child_fields(point_type: RecordType) -> None:
    point3d = extend(point_type, {"z": int})
    point = point3d({"x": 1, "y": 2, "z": 4})

    assert (point.x, point.y, point.z) == (1, 2, 4)
    assert isinstance(point, point_type)
    assert point3d.__name__ == "ExtendedPoint"


def test_descriptor_default_and_override() -> None:
    holder = create({"num": {"type": re.compile(r"\d+"), "value": 42, "required": False}})

    assert holder({}).num == 42
    assert holder({"num": 99}).num == 99


# --- required / optional -------------------------------------------------------------


def test_missing_required_field_reports_undefined(point_type: RecordType) -> None:
    with pytest.raises(ValidationError) as excinfo:
        point_type({"x": 1})

    assert excinfo.value.field == "y"
    assert excinfo.value.value is UNSET
    assert str(excinfo.value) == 'Validation failed for "y", value "undefined" is not a int'


def test_unset_optional_field_reads_none() -> None:
    loose = create({"note": None, "size": field(type=int, required=False)})
    instance = loose()

    assert instance.note is None
    assert instance.size is None


def test_optional_field_with_default_reads_default() -> None:
    loose = create({"size": field(type=int, default=3, required=False)})

    assert loose().size == 3
    assert loose(size=4).size == 4


def test_present_none_counts_as_supplied() -> None:
    sized = create({"size": field(type=int, default=3, required=False)})
    untyped = create({"note": None})

    with pytest.raises(ValidationError):
        sized(size=None)
    assert untyped(note=None).note is None


def test_defaults_are_validated() -> None:
    broken = create({"size": field(type=int, default="three")})

    with pytest.raises(ValidationError, match='"size"'):
        broken()


def test_default_factory_builds_fresh_values() -> None:
    tagged = create({"tags": field(type=list, default_factory=list)})
    first = tagged()
    second = tagged()

    first.tags.append("a")

    assert second.tags == []
    assert first.tags is not second.tags


# --- arguments -------------------------------------------------------------------------


def test_keyword_and_mapping_conventions_are_equivalent(point_type: RecordType) -> None:
    assert repr(point_type(x=1, y=2)) == repr(point_type({"x": 1, "y": 2})) == "Point(x=1, y=2)"


def test_named_convention_rejects_mixed_or_positional_arguments(point_type: RecordType) -> None:
    with pytest.raises(TypeError, match="not both"):
        point_type({"x": 1}, y=2)
    with pytest.raises(TypeError, match="at most one positional"):
        point_type({"x": 1}, {"y": 2})
    with pytest.raises(TypeError, match="must be a mapping"):
        point_type(1)


def test_none_argument_means_no_arguments() -> None:
    loose = create({"note": None})

    assert loose(None).note is None


def test_unknown_keys_are_ignored(point_type: RecordType) -> None:
    point = point_type({"x": 1, "y": 2, "w": 3})

    assert not hasattr(point, "w")


def test_constant_accepts_unvalidated_override() -> None:
    named = create({"name": "default text"})

    assert named(name="other").name == "other"
    assert named(name=5).name == 5
    assert named().name == "default text"


def test_positional_hook_maps_arguments() -> None:
    positional = create({"x": int, "y": int}, build_args=lambda x, y: {"x": x, "y": y})
    point = positional(1, 2)

    assert (point.x, point.y) == (1, 2)
    with pytest.raises(ValidationError):
        positional("1", 2)


def test_positional_hook_is_inherited_and_overridable() -> None:
    positional = create({"x": int, "y": int}, build_args=lambda x, y: {"x": x, "y": y})
    labeled = extend(positional, {"label": "pt"})
    spatial = extend(positional, {"z": int}, build_args=lambda x, y, z: {"x": x, "y": y, "z": z})

    assert labeled(1, 2).label == "pt"
    assert spatial(1, 2, 3).z == 3


def test_positional_hook_must_return_mapping() -> None:
    broken = create({"x": int}, build_args=lambda x: [x])

    with pytest.raises(TypeError, match="must return a mapping"):
        broken(1)


def test_non_callable_hook_is_a_schema_error() -> None:
    with pytest.raises(SchemaError, match="build_args"):
        create({"x": int}, build_args=5)  # type: ignore[arg-type]


# --- computed fields and methods -------------------------------------------------------


def test_computed_fields_are_never_evaluated_during_construction() -> None:
    calls: list[str] = []

    def total(self: object) -> int:
        calls.append("total")
        raise ZeroDivisionError

    summary = create({"count": int, "total": property(total)})
    instance = summary({"count": 1, "total": 1})

    assert calls == []
    assert "total" not in repr(instance)
    with pytest.raises(ZeroDivisionError):
        _ = instance.total


def test_computed_fields_recompute_on_every_read() -> None:
    counter = create({"count": int, "double": property(lambda self: self.count * 2)})
    instance = counter(count=2)

    assert instance.double == 4
    instance.count = 5
    assert instance.double == 10


def test_methods_ignore_constructor_keys() -> None:
    def describe(self: object) -> str:
        return "described"

    described = create({"describe": describe})
    instance = described(describe="ignored")

    assert instance.describe() == "described"


# --- extension chains ----------------------------------------------------------------


def test_extension_applies_fields_root_first() -> None:
    calls: list[str] = []

    def tracking(tag: str):  # noqa: ANN202
        def check(value: object) -> bool:
            calls.append(tag)
            return True

        check.__name__ = tag
        return check

    first = create({"a": tracking("a")})
    second = extend(first, {"b": tracking("b")})
    third = extend(second, {"c": tracking("c")})

    third(a=1, b=2, c=3)

    assert calls == ["a", "b", "c"]
    assert _field_names(third) == ["a", "b", "c"]


def test_most_derived_definition_wins() -> None:
    base = create({"x": int, "label": "base"})
    derived = extend(base, {"x": str, "label": "derived"})
    instance = derived(x="text")

    assert instance.x == "text"
    assert instance.label == "derived"
    assert _field_names(derived) == ["x", "label"]
    with pytest.raises(ValidationError):
        derived(x=1)


def test_super_reference_reaches_parent_methods() -> None:
    class Greeter(Record):
        name = str

        def greet(self) -> str:
            return f"hello {self.name}"

    class LoudGreeter(Greeter):
        def greet(self) -> str:
            return LoudGreeter.__super__.greet(self).upper()

    assert LoudGreeter.__super__ is Greeter
    assert LoudGreeter(name="ada").greet() == "HELLO ADA"
    assert Greeter.__super__ is None


def test_class_statement_compiles_like_create() -> None:
    class Point(Record):
        x = int
        y = int
        origin_label = "origin"

        def norm(self) -> int:
            return abs(self.x) + abs(self.y)

    point = Point(x=3, y=-4)

    assert point.norm() == 7
    assert point.origin_label == "origin"
    assert _field_names(Point) == ["x", "y", "origin_label", "norm"]


# --- plain-class parents and nesting ---------------------------------------------------


class Contact:
    kind = "contact"

    def __init__(self, payload: object = None) -> None:
        self.raw = payload

    def shout(self) -> str:
        return f"{self.kind}!"

    @property
    def described(self) -> str:
        return f"{self.kind} record"


def test_plain_parent_receives_original_arguments() -> None:
    email = extend(Contact, {"address": re.compile(r"@")})
    instance = email({"address": "ada@example.org"})

    assert instance.raw == {"address": "ada@example.org"}
    assert instance.address == "ada@example.org"
    assert instance.shout() == "contact!"
    assert instance.described == "contact record"
    assert isinstance(instance, Contact)
    assert email.__super__ is Contact
    assert email.__name__ == "ExtendedContact"


def test_schema_fields_shadow_plain_parent_attributes() -> None:
    email = extend(Contact, {"kind": "email"})

    assert email().shout() == "email!"


def test_plain_parent_survives_record_extension() -> None:
    email = extend(Contact, {"address": re.compile(r"@")})
    work_email = extend(email, {"team": str})
    instance = work_email({"address": "ada@example.org", "team": "core"})

    assert instance.raw == {"address": "ada@example.org", "team": "core"}
    assert instance.team == "core"


def test_record_types_nest_as_nominal_constraints() -> None:
    inner = create({"v": int}, name="Inner")
    outer = create({"inner": inner}, name="Outer")

    assert outer(inner=inner(v=1)).inner.v == 1
    with pytest.raises(ValidationError) as excinfo:
        outer(inner={"v": 1})
    assert excinfo.value.expected_type == "Inner"


def test_metaclass_conflict_is_a_schema_error() -> None:
    class Meta(type):
        pass

    class Managed(metaclass=Meta):
        pass

    with pytest.raises(SchemaError, match="cannot extend"):
        extend(Managed, {"x": int})


def test_multiple_parents_are_rejected(point_type: RecordType) -> None:
    other = create({"z": int})

    with pytest.raises(SchemaError, match="single parent"):

        class Both(point_type, other):  # type: ignore[misc, valid-type]
            pass

    with pytest.raises(SchemaError, match="together"):

        class Mixed(point_type, Contact):  # type: ignore[misc, valid-type]
            pass


def test_extend_requires_a_class() -> None:
    with pytest.raises(TypeError, match="parent must be a class"):
        extend(object(), {"x": int})  # type: ignore[arg-type]


# --- sealing ---------------------------------------------------------------------------


def test_instances_are_sealed_after_construction(point_type: RecordType) -> None:
    point = point_type(x=1, y=2)

    assert is_sealed(point)
    with pytest.raises(SealedError):
        point.extra = 1
    with pytest.raises(SealedError):
        del point.x
    assert not hasattr(point, "extra")


def test_sealed_error_is_host_level_immutability(point_type: RecordType) -> None:
    point = point_type(x=1, y=2)

    with pytest.raises(AttributeError):
        point.extra = 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        point.extra = 1


def test_constant_reassignment_is_not_a_validation_error() -> None:
    named = create({"name": "default text"})
    instance = named()

    with pytest.raises(SealedError) as excinfo:
        instance.name = "other"
    assert not isinstance(excinfo.value, ValidationError)
    assert instance.name == "default text"


def test_immutable_validated_field_is_frozen_after_seal() -> None:
    fixed = create({"x": {"type": int, "writable": False}})
    instance = fixed(x=1)

    with pytest.raises(SealedError):
        instance.x = 2
    assert instance.x == 1


def test_mutable_fields_validate_after_seal(point_type: RecordType) -> None:
    point = point_type(x=1, y=2)

    point.x = 10
    assert point.x == 10
    with pytest.raises(ValidationError):
        point.x = "ten"
    assert point.x == 10


def test_mutable_by_default_option_freezes_fields() -> None:
    frozen = create({"x": int}, options=CompilerOptions(mutable_by_default=False))
    instance = frozen(x=1)

    with pytest.raises(SealedError):
        instance.x = 2


def test_compiled_fields_cannot_be_rebound(point_type: RecordType) -> None:
    with pytest.raises(SealedError):
        point_type.x = 5
    with pytest.raises(SealedError):
        point_type.__record_fields__ = {}
    with pytest.raises(SealedError):
        del point_type.y


def test_helper_methods_can_be_added_after_compilation(point_type: RecordType) -> None:
    point_type.swapped = lambda self: (self.y, self.x)
    point = point_type(x=1, y=2)

    assert point.swapped() == (2, 1)


def test_fields_accepts_types_and_instances(point_type: RecordType) -> None:
    point = point_type(x=1, y=2)

    assert fields(point) == fields(point_type)
    with pytest.raises(TypeError, match="not a record type"):
        fields(object)


def test_functions_without_parameters_are_callable_methods() -> None:
    def greeting() -> str:
        return "hello"

    greeter = create({"name": "x", "greeting": greeting})
    instance = greeter(greeting="ignored")

    assert instance.greeting() == "hello"
    assert greeter.greeting() == "hello"
    assert instance.name == "x"


# --- instance isolation ----------------------------------------------------------------


def test_copies_own_their_field_values(point_type: RecordType) -> None:
    original = point_type(x=1, y=2)
    duplicate = copy.copy(original)

    duplicate.x = 99

    assert original.x == 1
    assert duplicate.x == 99
    assert is_sealed(duplicate)
    with pytest.raises(SealedError):
        duplicate.extra = 1


def test_deep_copies_own_their_field_values() -> None:
    tagged = create({"tags": field(type=list, default_factory=list)})
    original = tagged(tags=["a"])
    duplicate = copy.deepcopy(original)

    duplicate.tags.append("b")
    duplicate.tags = ["c"]

    assert original.tags == ["a"]


def test_mutable_defaults_are_refused_at_compile_time() -> None:
    with pytest.raises(SchemaError, match="default_factory"):
        create({"tags": field(type=list, default=[])})
    with pytest.raises(SchemaError, match="default_factory"):
        create({"meta": {"nested": {}}})

    frozen = create({"levels": ("low", "high")})
    assert frozen().levels is frozen().levels
