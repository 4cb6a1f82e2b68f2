"""Assemble resolved fields into record types and run record construction.

A record type is an ordinary class whose metaclass is ``RecordType``. Single-parent
extension is explicit: each record type keeps a reference to its parent record type
(or to one plain "native" class it wraps) and construction walks that chain from the
root down, each level applying only the fields it owns, before the outermost level
seals the instance.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any, Final

from volan.compiler.accessors import (
    backing_store,
    detach_store,
    is_sealed,
    seal,
    store_value,
    synthesize,
)
from volan.compiler.options import CompilerOptions, default_options
from volan.compiler.resolver import UNSET, FieldDescriptor, FieldKind, resolve
from volan.constants import (
    RECORD_BUILD_ARGS_ATTR,
    RECORD_FIELDS_ATTR,
    RECORD_NATIVE_ATTR,
    RECORD_OWN_FIELDS_ATTR,
    RECORD_PARENT_ATTR,
    SUPER_ATTR,
)
from volan.errors import SchemaError, SealedError, ValidationError

logger = logging.getLogger(__name__)

BuildArgs = Callable[..., Mapping[str, object]]

_DEFAULT_RECORD_NAME: Final[str] = "AnonymousRecord"
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    {
        RECORD_BUILD_ARGS_ATTR,
        RECORD_FIELDS_ATTR,
        RECORD_NATIVE_ATTR,
        RECORD_OWN_FIELDS_ATTR,
        RECORD_PARENT_ATTR,
        SUPER_ATTR,
    }
)

# Set once the ``Record`` root class exists; every later record type descends from it.
_RECORD_ROOT: type | None = None


def _split_bases(name: str, bases: tuple[type, ...]) -> tuple[RecordType | None, type | None]:
    record_bases = [base for base in bases if isinstance(base, RecordType) and base is not _RECORD_ROOT]
    native_bases = [
        base for base in bases if not isinstance(base, RecordType) and base is not object
    ]
    if len(record_bases) > 1:
        names = ", ".join(base.__name__ for base in record_bases)
        raise SchemaError(f"{name}: record types extend a single parent, got {names}")
    if len(native_bases) > 1:
        names = ", ".join(base.__name__ for base in native_bases)
        raise SchemaError(f"{name}: record types wrap a single plain class, got {names}")
    if record_bases and native_bases:
        raise SchemaError(
            f"{name}: cannot extend record type {record_bases[0].__name__} "
            f"and plain class {native_bases[0].__name__} together"
        )
    return (record_bases[0] if record_bases else None), (native_bases[0] if native_bases else None)


def _is_reserved(key: str) -> bool:
    return key.startswith("__") and key.endswith("__")


def _class_attribute(cls: type, name: str) -> object:
    for klass in cls.__mro__:
        if name in klass.__dict__:
            return klass.__dict__[name]
    return None


def _is_data_descriptor(attribute: object) -> bool:
    kind = type(attribute)
    return hasattr(kind, "__set__") or hasattr(kind, "__delete__")


def _caller_module() -> str:
    frame = sys._getframe(2)
    return str(frame.f_globals.get("__name__", "__main__"))


class RecordType(type):
    """Metaclass compiling a class namespace (the schema) into a record type."""

    __record_fields__: Mapping[str, FieldDescriptor]
    __record_own_fields__: tuple[FieldDescriptor, ...]
    __record_parent__: RecordType | None
    __record_native__: type | None
    __record_build_args__: BuildArgs | None
    __super__: type | None

    def __new__(
        mcls,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        *,
        build_args: BuildArgs | None = None,
        options: CompilerOptions | None = None,
        **kwargs: Any,
    ) -> RecordType:
        parent, native = _split_bases(name, bases)

        declarations = {key: value for key, value in namespace.items() if not _is_reserved(key)}
        opts = options
        if opts is None and declarations:
            opts = default_options()
        own = tuple(resolve(key, value, options=opts) for key, value in declarations.items())

        merged: dict[str, FieldDescriptor] = dict(parent.__record_fields__) if parent else {}
        for descriptor in own:
            merged[descriptor.name] = descriptor

        if build_args is None and parent is not None:
            build_args = parent.__record_build_args__
        if build_args is not None and not callable(build_args):
            raise SchemaError(f"{name}: build_args must be callable")

        body = {key: value for key, value in namespace.items() if _is_reserved(key)}
        for descriptor in own:
            body[descriptor.name] = synthesize(descriptor)
        body[RECORD_OWN_FIELDS_ATTR] = own
        body[RECORD_FIELDS_ATTR] = MappingProxyType(merged)
        body[RECORD_PARENT_ATTR] = parent
        body[RECORD_NATIVE_ATTR] = native
        body[RECORD_BUILD_ARGS_ATTR] = build_args
        body[SUPER_ATTR] = parent if parent is not None else native

        cls = super().__new__(mcls, name, bases, body, **kwargs)
        logger.debug(
            "compiled record type %s",
            name,
            extra={
                "record_type": name,
                "own_fields": len(own),
                "total_fields": len(merged),
                "parent": None if cls.__super__ is None else cls.__super__.__name__,
            },
        )
        return cls

    def __setattr__(cls, name: str, value: object) -> None:
        if name in _RECORD_ATTRS or name in cls.__dict__.get(RECORD_FIELDS_ATTR, {}):
            raise SealedError(f"cannot rebind {name!r} on compiled record type {cls.__name__}")
        super().__setattr__(name, value)

    def __delattr__(cls, name: str) -> None:
        if name in _RECORD_ATTRS or name in cls.__dict__.get(RECORD_FIELDS_ATTR, {}):
            raise SealedError(f"cannot delete {name!r} from compiled record type {cls.__name__}")
        super().__delattr__(name)


class Record(metaclass=RecordType):
    """Base class of every record type.

    Calling a record type runs the construction chain and seals the result: new
    attributes are refused, constant and immutable fields can no longer be assigned,
    and mutable validated fields keep validating every assignment.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        cls = type(self)
        named = _named_arguments(cls, args, kwargs)
        _construct(cls, self, named, args, kwargs)
        seal(self)

    def __setattr__(self, name: str, value: object) -> None:
        if is_sealed(self) and not _is_data_descriptor(_class_attribute(type(self), name)):
            raise SealedError(
                f"cannot assign to {name!r}: {type(self).__name__} instance is sealed"
            )
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        if is_sealed(self):
            raise SealedError(
                f"cannot delete {name!r}: {type(self).__name__} instance is sealed"
            )
        object.__delattr__(self, name)

    def __copy__(self) -> Record:
        cls = type(self)
        duplicate = cls.__new__(cls)
        duplicate.__dict__.update(self.__dict__)
        detach_store(duplicate)
        return duplicate

    def __repr__(self) -> str:
        cls = type(self)
        store = backing_store(self) or {}
        rendered: list[str] = []
        for descriptor in cls.__record_fields__.values():
            if not descriptor.accepts_input:
                continue
            if descriptor.name in store:
                value = store[descriptor.name]
            elif descriptor.default is not UNSET:
                value = descriptor.default
            else:
                value = None
            rendered.append(f"{descriptor.name}={value!r}")
        return f"{cls.__name__}({', '.join(rendered)})"


_RECORD_ROOT = Record


def build(
    descriptors: Mapping[str, object],
    parent: type | None = None,
    *,
    name: str | None = None,
    build_args: BuildArgs | None = None,
    options: CompilerOptions | None = None,
    module: str | None = None,
) -> RecordType:
    """Compile ``descriptors`` (a schema) into a record type, optionally below ``parent``."""

    if parent is None or parent is Record:
        bases: tuple[type, ...] = (Record,)
    elif not isinstance(parent, type):
        raise TypeError(f"parent must be a class, got {type(parent).__name__}")
    elif isinstance(parent, RecordType):
        bases = (parent,)
    else:
        bases = (Record, parent)

    record_name = name or _DEFAULT_RECORD_NAME
    namespace: dict[str, Any] = dict(descriptors)
    namespace["__module__"] = module or _caller_module()
    namespace["__qualname__"] = record_name

    try:
        return RecordType(record_name, bases, namespace, build_args=build_args, options=options)
    except TypeError as exc:
        if "metaclass conflict" not in str(exc):
            raise
        raise SchemaError(f"{record_name}: cannot extend {parent!r}: {exc}") from exc


def create(
    schema: Mapping[str, object],
    *,
    name: str | None = None,
    build_args: BuildArgs | None = None,
    options: CompilerOptions | None = None,
) -> RecordType:
    """Compile a standalone schema into a record type."""

    return build(
        schema,
        None,
        name=name,
        build_args=build_args,
        options=options,
        module=_caller_module(),
    )


def extend(
    parent: type,
    schema: Mapping[str, object],
    *,
    name: str | None = None,
    build_args: BuildArgs | None = None,
    options: CompilerOptions | None = None,
) -> RecordType:
    """Compile ``schema`` as a record type derived from ``parent``.

    ``parent`` is a record type or a plain class; a plain class receives the original
    constructor arguments in its ``__init__`` before the schema fields are applied.
    """

    if not isinstance(parent, type):
        raise TypeError(f"parent must be a class, got {type(parent).__name__}")
    return build(
        schema,
        parent,
        name=name or f"Extended{parent.__name__}",
        build_args=build_args,
        options=options,
        module=_caller_module(),
    )


def fields(record: object) -> tuple[FieldDescriptor, ...]:
    """Return the merged field descriptors of a record type or instance."""

    cls = record if isinstance(record, type) else type(record)
    if not isinstance(cls, RecordType):
        raise TypeError(f"{cls.__name__} is not a record type")
    return tuple(cls.__record_fields__.values())


def _named_arguments(
    cls: RecordType,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Mapping[str, object]:
    hook = cls.__record_build_args__
    if hook is not None:
        produced = hook(*args, **kwargs)
        if not isinstance(produced, Mapping):
            raise TypeError(
                f"{cls.__name__} build_args hook must return a mapping, "
                f"got {type(produced).__name__}"
            )
        return produced

    if args and kwargs:
        raise TypeError(f"{cls.__name__}() takes a mapping or keyword arguments, not both")
    if len(args) > 1:
        raise TypeError(
            f"{cls.__name__}() takes at most one positional mapping ({len(args)} given); "
            "compile with build_args= for positional construction"
        )
    if not args:
        return kwargs
    supplied = args[0]
    if supplied is None:
        return {}
    if not isinstance(supplied, Mapping):
        raise TypeError(
            f"{cls.__name__}() argument must be a mapping, got {type(supplied).__name__}"
        )
    return supplied


def _construct(
    level: RecordType,
    instance: object,
    named: Mapping[str, object],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> None:
    parent = level.__record_parent__
    native = level.__record_native__
    if parent is not None:
        _construct(parent, instance, named, args, kwargs)
    elif native is not None and native.__init__ is not object.__init__:
        native.__init__(instance, *args, **kwargs)

    effective = type(instance).__record_fields__
    for descriptor in level.__record_own_fields__:
        if effective.get(descriptor.name) is not descriptor:
            continue
        _apply_field(instance, descriptor, named)


def _apply_field(
    instance: object,
    descriptor: FieldDescriptor,
    named: Mapping[str, object],
) -> None:
    name = descriptor.name
    supplied = named.get(name, UNSET)

    if not descriptor.accepts_input:
        if supplied is not UNSET:
            logger.debug(
                "ignoring constructor argument %r for %s field",
                name,
                descriptor.kind.value,
                extra={"record_type": type(instance).__name__, "field": name},
            )
        return

    if descriptor.kind is FieldKind.CONSTANT:
        if supplied is not UNSET:
            store_value(instance, name, supplied)
        return

    if supplied is not UNSET:
        setattr(instance, name, supplied)
    elif descriptor.has_default:
        setattr(instance, name, descriptor.make_default())
    elif descriptor.required:
        raise ValidationError(name, UNSET, descriptor.type_label)


__all__ = [
    "BuildArgs",
    "Record",
    "RecordType",
    "build",
    "create",
    "extend",
    "fields",
]
