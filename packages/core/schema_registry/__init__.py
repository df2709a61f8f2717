"""Schema Registry - column type families and table metadata providers."""

from .registry import (
    ColumnMeta,
    FieldType,
    IndexMeta,
    SchemaIntrospectionError,
    SchemaProvider,
    SchemaRegistry,
    TableSchema,
    classify_data_type,
    get_default_registry,
)

__all__ = [
    "ColumnMeta",
    "FieldType",
    "IndexMeta",
    "SchemaIntrospectionError",
    "SchemaProvider",
    "SchemaRegistry",
    "TableSchema",
    "classify_data_type",
    "get_default_registry",
]
