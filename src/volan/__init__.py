"""
volan — schema-driven record types

File: src/volan/__init__.py

Purpose
- Package root. Exposes the record compiler entrypoints and public error types.

Public surface
- ``create(schema)`` compiles a standalone schema into a record type.
- ``extend(parent, schema)`` compiles a schema below a record type or a plain class.
- Record types are called with a mapping (or keyword arguments) and return sealed,
  validated instances.

Import boundary
- Importing the package must not load configuration or configure logging; both happen
  lazily (first compile) or explicitly (``volan.observability.setup_logging``).
"""

from volan.compiler import (
    UNSET,
    CompilerOptions,
    Field,
    FieldDescriptor,
    Record,
    RecordType,
    build,
    create,
    extend,
    field,
    fields,
    is_sealed,
)
from volan.errors import SchemaError, SealedError, ValidationError, VolanError

__version__ = "0.4.0"

__all__ = [
    "CompilerOptions",
    "Field",
    "FieldDescriptor",
    "Record",
    "RecordType",
    "SchemaError",
    "SealedError",
    "UNSET",
    "ValidationError",
    "VolanError",
    "__version__",
    "build",
    "create",
    "extend",
    "field",
    "fields",
    "is_sealed",
]
