"""Schema compiler: constraint resolution, accessor synthesis, and record construction."""

from volan.compiler.accessors import (
    ConstantField,
    ValidatedField,
    check_value,
    is_sealed,
    synthesize,
)
from volan.compiler.builder import (
    BuildArgs,
    Record,
    RecordType,
    build,
    create,
    extend,
    fields,
)
from volan.compiler.options import CompilerOptions, clear_default_options, default_options
from volan.compiler.resolver import (
    UNSET,
    ConstraintKind,
    Field,
    FieldDescriptor,
    FieldKind,
    field,
    resolve,
    resolve_schema,
)

__all__ = [
    "BuildArgs",
    "CompilerOptions",
    "ConstantField",
    "ConstraintKind",
    "Field",
    "FieldDescriptor",
    "FieldKind",
    "Record",
    "RecordType",
    "UNSET",
    "ValidatedField",
    "build",
    "check_value",
    "clear_default_options",
    "create",
    "default_options",
    "extend",
    "field",
    "fields",
    "is_sealed",
    "resolve",
    "resolve_schema",
    "synthesize",
]
