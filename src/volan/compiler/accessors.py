"""Turn resolved field descriptors into the attributes installed on a record type."""

from __future__ import annotations

import logging
from typing import Any, Final

from volan.compiler.resolver import UNSET, FieldDescriptor, FieldKind
from volan.constants import INSTANCE_SEALED_ATTR, INSTANCE_STORE_ATTR
from volan.errors import SealedError, ValidationError

logger = logging.getLogger(__name__)

# Failures a well-behaved predicate may raise for a foreign value; treated as rejection.
_PREDICATE_REJECTIONS: Final[tuple[type[Exception], ...]] = (TypeError, ValueError, AttributeError)


def backing_store(instance: object) -> dict[str, object] | None:
    """Return the private value table of ``instance``, or None before its first write."""

    return instance.__dict__.get(INSTANCE_STORE_ATTR)


def _ensure_store(instance: object) -> dict[str, object]:
    namespace = instance.__dict__
    store = namespace.get(INSTANCE_STORE_ATTR)
    if store is None:
        store = {}
        namespace[INSTANCE_STORE_ATTR] = store
    return store


def detach_store(instance: object) -> None:
    """Give ``instance`` its own copy of a value table it may share with another instance."""

    store = backing_store(instance)
    if store is not None:
        instance.__dict__[INSTANCE_STORE_ATTR] = dict(store)


def is_sealed(instance: object) -> bool:
    namespace = getattr(instance, "__dict__", None)
    if namespace is None:
        return False
    return bool(namespace.get(INSTANCE_SEALED_ATTR, False))


def seal(instance: object) -> None:
    """Irreversibly finalize ``instance``."""

    instance.__dict__[INSTANCE_SEALED_ATTR] = True


def check_value(descriptor: FieldDescriptor, value: object) -> None:
    """Raise ``ValidationError`` unless ``value`` satisfies the descriptor's predicate."""

    try:
        accepted = descriptor.predicate(value)
    except _PREDICATE_REJECTIONS as exc:
        _log_rejection(descriptor, value)
        raise ValidationError(descriptor.name, value, descriptor.type_label) from exc
    if not accepted:
        _log_rejection(descriptor, value)
        raise ValidationError(descriptor.name, value, descriptor.type_label)


def store_value(instance: object, name: str, value: object) -> None:
    _ensure_store(instance)[name] = value


class ValidatedField:
    """Read/write accessor whose setter runs the field predicate before storing."""

    __slots__ = ("descriptor",)

    def __init__(self, descriptor: FieldDescriptor) -> None:
        self.descriptor = descriptor

    def __repr__(self) -> str:
        return f"ValidatedField({self.descriptor.name!r}, {self.descriptor.type_label!r})"

    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        store = backing_store(instance)
        name = self.descriptor.name
        if store is not None and name in store:
            return store[name]
        if self.descriptor.default is not UNSET:
            return self.descriptor.default
        return None

    def __set__(self, instance: object, value: object) -> None:
        descriptor = self.descriptor
        if is_sealed(instance) and not descriptor.mutable:
            raise SealedError(f"cannot assign to immutable field {descriptor.name!r}")
        check_value(descriptor, value)
        store_value(instance, descriptor.name, value)

    def __delete__(self, instance: object) -> None:
        if is_sealed(instance):
            raise SealedError(f"cannot delete field {self.descriptor.name!r}")
        store = backing_store(instance)
        if store is not None:
            store.pop(self.descriptor.name, None)


class ConstantField:
    """Frozen value binding; a construction-time override shadows the declared value."""

    __slots__ = ("descriptor",)

    def __init__(self, descriptor: FieldDescriptor) -> None:
        self.descriptor = descriptor

    def __repr__(self) -> str:
        return f"ConstantField({self.descriptor.name!r}, {self.descriptor.default!r})"

    def __get__(self, instance: object | None, owner: type | None = None) -> Any:
        if instance is None:
            return self.descriptor.default
        store = backing_store(instance)
        if store is not None and self.descriptor.name in store:
            return store[self.descriptor.name]
        return self.descriptor.default

    def __set__(self, instance: object, value: object) -> None:
        raise SealedError(f"cannot assign to constant field {self.descriptor.name!r}")

    def __delete__(self, instance: object) -> None:
        raise SealedError(f"cannot delete constant field {self.descriptor.name!r}")


def synthesize(descriptor: FieldDescriptor) -> object:
    """Return the class attribute implementing ``descriptor``."""

    if descriptor.kind is FieldKind.VALIDATED:
        return ValidatedField(descriptor)
    if descriptor.kind is FieldKind.CONSTANT:
        return ConstantField(descriptor)
    # methods and computed accessors are installed exactly as declared
    return descriptor.value


def _log_rejection(descriptor: FieldDescriptor, value: object) -> None:
    logger.debug(
        "rejected value for field %r",
        descriptor.name,
        extra={"field": descriptor.name, "expected_type": descriptor.type_label, "value": value},
    )


__all__ = [
    "ConstantField",
    "ValidatedField",
    "backing_store",
    "check_value",
    "detach_store",
    "is_sealed",
    "seal",
    "store_value",
    "synthesize",
]
