"""Classify raw field declarations into normalized field descriptors.

Every declaration found in a schema is resolved exactly once, at compile time, into a
``FieldDescriptor``. The descriptor records which accessor the field gets
(``FieldKind``) and, for validated fields, which predicate guards it
(``ConstraintKind``). Nothing downstream re-inspects the raw declaration.

Resolution never raises in the default mode: malformed declarations are normalized
best-effort and reported through the module logger. ``CompilerOptions.strict_descriptors``
turns those reports into ``SchemaError``. Unhashable (mutable) defaults and constants
always raise ``SchemaError``: one object would otherwise be shared by every instance.
"""

from __future__ import annotations

import inspect
import logging
import re
import types
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Final, Protocol

from volan.compiler.options import CompilerOptions
from volan.constants import (
    ACCEPT_ANY_LABEL,
    ANONYMOUS_PREDICATE_LABEL,
    DESCRIPTOR_KEYS,
    DESCRIPTOR_TYPE_KEY,
    PATTERN_LABEL_TEMPLATE,
    PRIMITIVE_TYPE_TAGS,
    UNSET_LABEL,
)
from volan.errors import SchemaError

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for "no value": an absent default or a never-supplied argument."""

    __slots__ = ()
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __str__(self) -> str:
        return UNSET_LABEL

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


class FieldKind(StrEnum):
    CONSTANT = "constant"
    METHOD = "method"
    COMPUTED = "computed"
    VALIDATED = "validated"


class ConstraintKind(StrEnum):
    ANY = "any"
    TYPE_TAG = "type_tag"
    NOMINAL = "nominal"
    PATTERN = "pattern"
    PREDICATE = "predicate"


class Predicate(Protocol):
    @property
    def kind(self) -> ConstraintKind: ...

    @property
    def label(self) -> str: ...

    def __call__(self, value: object, /) -> bool: ...


@dataclass(frozen=True, slots=True)
class AcceptAny:
    """Predicate of untyped fields."""

    @property
    def kind(self) -> ConstraintKind:
        return ConstraintKind.ANY

    @property
    def label(self) -> str:
        return ACCEPT_ANY_LABEL

    def __call__(self, value: object, /) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class TypeTagPredicate:
    """Type-tag check for the primitive classes.

    ``bool`` never passes for a numeric tag. With ``numeric_tower`` on, ``float`` also
    accepts ``int`` and ``complex`` accepts ``int`` and ``float``.
    """

    tag: type
    numeric_tower: bool = True

    @property
    def kind(self) -> ConstraintKind:
        return ConstraintKind.TYPE_TAG

    @property
    def label(self) -> str:
        return self.tag.__name__

    def __call__(self, value: object, /) -> bool:
        if isinstance(value, bool) and self.tag is not bool:
            return False
        if isinstance(value, self.tag):
            return True
        if not self.numeric_tower:
            return False
        if self.tag is float:
            return isinstance(value, int)
        if self.tag is complex:
            return isinstance(value, (int, float))
        return False


@dataclass(frozen=True, slots=True)
class NominalPredicate:
    """``isinstance`` membership against a class, a union, or a generic's origin."""

    declared: object
    checked: type | tuple[type, ...]

    @property
    def kind(self) -> ConstraintKind:
        return ConstraintKind.NOMINAL

    @property
    def label(self) -> str:
        if isinstance(self.declared, type) and typing.get_origin(self.declared) is None:
            return self.declared.__name__
        return str(self.declared)

    def __call__(self, value: object, /) -> bool:
        return isinstance(value, self.checked)


@dataclass(frozen=True, slots=True)
class PatternPredicate:
    """Regular-expression search against the stringified value."""

    pattern: re.Pattern[str] | re.Pattern[bytes]

    @property
    def kind(self) -> ConstraintKind:
        return ConstraintKind.PATTERN

    @property
    def label(self) -> str:
        source = self.pattern.pattern
        if isinstance(source, bytes):
            source = source.decode("utf-8", errors="replace")
        return PATTERN_LABEL_TEMPLATE.format(pattern=source)

    def __call__(self, value: object, /) -> bool:
        if isinstance(self.pattern.pattern, bytes):
            subject: str | bytes = value if isinstance(value, bytes) else str(value).encode("utf-8")
        else:
            subject = str(value)
        return self.pattern.search(subject) is not None  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class CallablePredicate:
    """User-supplied one-argument check; the truthiness of its result decides."""

    function: Callable[[object], object]

    @property
    def kind(self) -> ConstraintKind:
        return ConstraintKind.PREDICATE

    @property
    def label(self) -> str:
        return _callable_label(self.function)

    def __call__(self, value: object, /) -> bool:
        return bool(self.function(value))


_ACCEPT_ANY: Final[AcceptAny] = AcceptAny()


@dataclass(frozen=True, slots=True)
class Field:
    """Explicit field declaration.

    Attributes:
        type: Constraint, resolved like a bare declaration (None means untyped).
        default: Value applied when the field is not supplied.
        default_factory: Zero-argument callable producing a fresh default per instance.
        mutable: Whether the field may be reassigned after sealing (None: options default).
        required: Whether construction fails when the field is absent and has no default.
    """

    type: object = None
    default: object = UNSET
    default_factory: Callable[[], object] | None = None
    mutable: bool | None = None
    required: bool = True


def field(
    *,
    type: object = None,  # noqa: A002
    default: object = UNSET,
    default_factory: Callable[[], object] | None = None,
    mutable: bool | None = None,
    required: bool = True,
) -> Field:
    """Build an explicit ``Field`` declaration."""

    return Field(
        type=type,
        default=default,
        default_factory=default_factory,
        mutable=mutable,
        required=required,
    )


@dataclass(frozen=True, slots=True, eq=False)
class FieldDescriptor:
    """Resolved form of one schema entry, owned by the record type that declared it."""

    name: str
    kind: FieldKind
    predicate: Predicate
    type_label: str
    default: object = UNSET
    default_factory: Callable[[], object] | None = None
    mutable: bool = True
    required: bool = False
    value: object = UNSET

    @property
    def constraint(self) -> ConstraintKind:
        return self.predicate.kind

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET or self.default_factory is not None

    @property
    def accepts_input(self) -> bool:
        return self.kind in (FieldKind.CONSTANT, FieldKind.VALIDATED)

    def make_default(self) -> object:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


def resolve(
    name: str,
    declaration: object,
    *,
    options: CompilerOptions | None = None,
) -> FieldDescriptor:
    """Resolve one raw schema declaration into a ``FieldDescriptor``."""

    opts = options if options is not None else CompilerOptions()

    explicit = _as_field(name, declaration, opts)
    if explicit is not None:
        return _resolve_explicit(name, explicit, opts)

    if declaration is None:
        return FieldDescriptor(
            name=name,
            kind=FieldKind.VALIDATED,
            predicate=_ACCEPT_ANY,
            type_label=_ACCEPT_ANY.label,
            mutable=opts.mutable_by_default,
            required=False,
        )

    if _is_method(declaration):
        return _passthrough(name, FieldKind.METHOD, declaration)

    if _takes_no_arguments(declaration):
        return _passthrough(name, FieldKind.METHOD, staticmethod(declaration))

    if _is_computed(declaration):
        return _passthrough(name, FieldKind.COMPUTED, declaration)

    predicate = _constraint_predicate(declaration, opts)
    if predicate is None:
        _require_unshared(name, declaration)
        return FieldDescriptor(
            name=name,
            kind=FieldKind.CONSTANT,
            predicate=_ACCEPT_ANY,
            type_label=_ACCEPT_ANY.label,
            default=declaration,
            mutable=False,
            value=declaration,
        )

    return FieldDescriptor(
        name=name,
        kind=FieldKind.VALIDATED,
        predicate=predicate,
        type_label=predicate.label,
        mutable=opts.mutable_by_default,
        required=True,
    )


def resolve_schema(
    schema: Mapping[str, object],
    *,
    options: CompilerOptions | None = None,
) -> tuple[FieldDescriptor, ...]:
    """Resolve every entry of ``schema`` in declaration order."""

    return tuple(resolve(name, declaration, options=options) for name, declaration in schema.items())


def _passthrough(name: str, kind: FieldKind, declaration: object) -> FieldDescriptor:
    return FieldDescriptor(
        name=name,
        kind=kind,
        predicate=_ACCEPT_ANY,
        type_label=_ACCEPT_ANY.label,
        mutable=False,
        value=declaration,
    )


def _as_field(name: str, declaration: object, opts: CompilerOptions) -> Field | None:
    if isinstance(declaration, Field):
        return declaration
    if not isinstance(declaration, Mapping) or DESCRIPTOR_TYPE_KEY not in declaration:
        return None

    unknown = sorted(str(key) for key in declaration if key not in DESCRIPTOR_KEYS)
    if unknown:
        _schema_problem(name, f"unknown descriptor keys: {unknown}", opts)

    if "default" in declaration:
        default = declaration["default"]
    else:
        default = declaration.get("value", UNSET)

    if "mutable" in declaration:
        mutable_raw = declaration["mutable"]
    else:
        mutable_raw = declaration.get("writable")

    factory = declaration.get("default_factory")
    if factory is not None and not callable(factory):
        _schema_problem(name, "default_factory must be callable; ignored", opts)
        factory = None

    return Field(
        type=declaration[DESCRIPTOR_TYPE_KEY],
        default=default,
        default_factory=factory,
        mutable=None if mutable_raw is None else bool(mutable_raw),
        required=bool(declaration.get("required", True)),
    )


def _resolve_explicit(name: str, declared: Field, opts: CompilerOptions) -> FieldDescriptor:
    if declared.default is not UNSET and declared.default_factory is not None:
        _schema_problem(name, "declares both default and default_factory", opts)

    predicate: Predicate
    if declared.type is None:
        predicate = _ACCEPT_ANY
    else:
        resolved = _constraint_predicate(declared.type, opts)
        if resolved is None:
            _schema_problem(name, f"type {declared.type!r} is not a constraint; field left untyped", opts)
            predicate = _ACCEPT_ANY
        else:
            predicate = resolved

    factory = declared.default_factory
    if factory is None and declared.default is not UNSET:
        _require_unshared(name, declared.default)
    return FieldDescriptor(
        name=name,
        kind=FieldKind.VALIDATED,
        predicate=predicate,
        type_label=predicate.label,
        default=UNSET if factory is not None else declared.default,
        default_factory=factory,
        mutable=opts.mutable_by_default if declared.mutable is None else declared.mutable,
        required=bool(declared.required),
    )


def _constraint_predicate(declaration: object, opts: CompilerOptions) -> Predicate | None:
    if isinstance(declaration, re.Pattern):
        return PatternPredicate(declaration)
    if declaration is typing.Any:
        return _ACCEPT_ANY

    # parameterized generics first: they proxy attribute access to their origin class
    checked = _runtime_classes(declaration)
    if checked is not None:
        return NominalPredicate(declaration, checked)

    if isinstance(declaration, type):
        if declaration in PRIMITIVE_TYPE_TAGS:
            return TypeTagPredicate(declaration, numeric_tower=opts.numeric_tower)
        return NominalPredicate(declaration, declaration)

    if callable(declaration):
        return CallablePredicate(declaration)
    return None


def _runtime_classes(declaration: object) -> tuple[type, ...] | None:
    origin = typing.get_origin(declaration)
    if origin is None:
        return None

    if origin is typing.Union or origin is types.UnionType:
        members: list[type] = []
        for arg in typing.get_args(declaration):
            member = arg if isinstance(arg, type) else typing.get_origin(arg)
            if not isinstance(member, type):
                return None
            members.append(member)
        return tuple(members)

    if isinstance(origin, type):
        return (origin,)
    return None


def _is_method(declaration: object) -> bool:
    if isinstance(declaration, (staticmethod, classmethod)):
        return True
    if not inspect.isfunction(declaration):
        return False
    parameters = tuple(inspect.signature(declaration).parameters)
    return bool(parameters) and parameters[0] == "self"


def _takes_no_arguments(declaration: object) -> bool:
    return inspect.isfunction(declaration) and not inspect.signature(declaration).parameters


def _require_unshared(name: str, value: object) -> None:
    # unhashable values count as mutable, the same rule dataclasses applies to defaults
    if type(value).__hash__ is None:
        raise SchemaError(
            f"field {name!r}: mutable {type(value).__name__} value would be shared by every "
            "instance; declare it with field(default_factory=...)"
        )


def _is_computed(declaration: object) -> bool:
    if callable(declaration) or isinstance(declaration, type):
        return False
    return hasattr(type(declaration), "__get__")


def _callable_label(function: object) -> str:
    name = getattr(function, "__name__", None)
    if not isinstance(name, str) or not name or name == "<lambda>":
        return ANONYMOUS_PREDICATE_LABEL
    return name


def _schema_problem(name: str, message: str, opts: CompilerOptions) -> None:
    if opts.strict_descriptors:
        raise SchemaError(f"field {name!r}: {message}")
    logger.warning("field %r: %s", name, message, extra={"field": name})


__all__ = [
    "AcceptAny",
    "CallablePredicate",
    "ConstraintKind",
    "Field",
    "FieldDescriptor",
    "FieldKind",
    "NominalPredicate",
    "PatternPredicate",
    "Predicate",
    "TypeTagPredicate",
    "UNSET",
    "field",
    "resolve",
    "resolve_schema",
]
