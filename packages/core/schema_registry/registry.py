"""
Schema Registry for the query builder.

This module defines:
- Which column type families the formatter understands
- The table/column metadata handed to the builder when a table is added
- The provider interface used to look that metadata up

The builder asks a provider once per table addition; it never caches
or invalidates schema data itself.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


# -----------------------------
# Field Types
# -----------------------------


class FieldType(str, Enum):
    """Column type families used for literal formatting."""

    STRING = "string"
    NUMERIC = "numeric"
    DATE = "date"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


# First word of a declared type (lower-cased, parameters stripped) -> family.
# Anything not listed here is treated as text.
_TYPE_FAMILIES: dict[str, FieldType] = {
    # numeric
    "int": FieldType.NUMERIC,
    "int2": FieldType.NUMERIC,
    "int4": FieldType.NUMERIC,
    "int8": FieldType.NUMERIC,
    "integer": FieldType.NUMERIC,
    "tinyint": FieldType.NUMERIC,
    "smallint": FieldType.NUMERIC,
    "mediumint": FieldType.NUMERIC,
    "bigint": FieldType.NUMERIC,
    "serial": FieldType.NUMERIC,
    "smallserial": FieldType.NUMERIC,
    "bigserial": FieldType.NUMERIC,
    "decimal": FieldType.NUMERIC,
    "numeric": FieldType.NUMERIC,
    "number": FieldType.NUMERIC,
    "real": FieldType.NUMERIC,
    "float": FieldType.NUMERIC,
    "float4": FieldType.NUMERIC,
    "float8": FieldType.NUMERIC,
    "double": FieldType.NUMERIC,
    "money": FieldType.NUMERIC,
    "smallmoney": FieldType.NUMERIC,
    # boolean
    "bool": FieldType.BOOLEAN,
    "boolean": FieldType.BOOLEAN,
    "bit": FieldType.BOOLEAN,
    # date
    "date": FieldType.DATE,
    # date/time
    "timestamp": FieldType.TIMESTAMP,
    "timestamptz": FieldType.TIMESTAMP,
    "datetime": FieldType.TIMESTAMP,
    "datetime2": FieldType.TIMESTAMP,
    "smalldatetime": FieldType.TIMESTAMP,
    "datetimeoffset": FieldType.TIMESTAMP,
    "time": FieldType.TIMESTAMP,
    "timetz": FieldType.TIMESTAMP,
}

_TYPE_PARAMS = re.compile(r"\(.*?\)")


def classify_data_type(data_type: "str | FieldType | None") -> FieldType:
    """
    Map a declared column type to its formatting family.

    Examples:
        "VARCHAR(255)"                -> STRING
        "double precision"            -> NUMERIC
        "timestamp with time zone"    -> TIMESTAMP
        "INT UNSIGNED"                -> NUMERIC
    """
    if isinstance(data_type, FieldType):
        return data_type
    if not data_type:
        return FieldType.STRING

    normalized = _TYPE_PARAMS.sub("", data_type).strip().lower()
    if not normalized:
        return FieldType.STRING

    first_word = normalized.split()[0]
    return _TYPE_FAMILIES.get(first_word, FieldType.STRING)


# -----------------------------
# Table Metadata
# -----------------------------


@dataclass(frozen=True)
class ColumnMeta:
    """Metadata for a single physical column."""

    name: str
    data_type: str
    nullable: bool = True

    @property
    def field_type(self) -> FieldType:
        return classify_data_type(self.data_type)


@dataclass(frozen=True)
class IndexMeta:
    """Metadata for an index on a table."""

    name: str
    columns: tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class TableSchema:
    """Columns and indexes of one table, as reported by a provider."""

    schema_name: str
    table_name: str
    columns: tuple[ColumnMeta, ...] = ()
    indexes: tuple[IndexMeta, ...] = ()

    def get_column(self, column_name: str) -> ColumnMeta | None:
        """Get column metadata by name."""
        for column in self.columns:
            if column.name == column_name:
                return column
        return None


# -----------------------------
# Errors
# -----------------------------


class SchemaIntrospectionError(Exception):
    """Raised when a provider cannot describe the requested table."""

    pass


# -----------------------------
# Provider Interface
# -----------------------------


class SchemaProvider(Protocol):
    """Anything that can describe a table for the builder."""

    def get_table_schema(self, schema_name: str, table_name: str) -> TableSchema:
        ...


class SchemaRegistry:
    """
    In-memory schema provider.

    Holds a fixed set of table descriptions. Used for tests and for
    hosts that already have schema metadata at hand.
    """

    def __init__(self, tables: list[TableSchema]):
        self._tables: dict[tuple[str, str], TableSchema] = {
            (table.schema_name, table.table_name): table for table in tables
        }

    # -------------------------
    # Lookup Methods
    # -------------------------

    def get_table_schema(self, schema_name: str, table_name: str) -> TableSchema:
        """Get table metadata, raising if the table is unknown."""
        table = self._tables.get((schema_name, table_name))
        if table is None:
            raise SchemaIntrospectionError(
                f"Unknown table '{_qualified(schema_name, table_name)}'"
            )
        return table

    def table_exists(self, schema_name: str, table_name: str) -> bool:
        """Check if a table exists in the registry."""
        return (schema_name, table_name) in self._tables

    def list_schemas(self) -> list[str]:
        """List all schema names, in first-seen order."""
        return list(dict.fromkeys(schema for schema, _ in self._tables))

    def list_tables(self, schema_name: str) -> list[str]:
        """List table names within one schema."""
        return [table for schema, table in self._tables if schema == schema_name]


def _qualified(schema_name: str, table_name: str) -> str:
    return f"{schema_name}.{table_name}" if schema_name else table_name


# -----------------------------
# Default Registry Definition
# -----------------------------

_DEFAULT_TABLES: list[TableSchema] = [
    TableSchema(
        schema_name="public",
        table_name="users",
        columns=(
            ColumnMeta("id", "integer", nullable=False),
            ColumnMeta("email", "varchar(255)", nullable=False),
            ColumnMeta("status", "varchar(20)"),
            ColumnMeta("is_active", "boolean"),
            ColumnMeta("created_at", "timestamp"),
        ),
        indexes=(IndexMeta("users_pkey", ("id",), unique=True),),
    ),
    TableSchema(
        schema_name="public",
        table_name="orders",
        columns=(
            ColumnMeta("order_id", "integer", nullable=False),
            ColumnMeta("user_id", "integer"),
            ColumnMeta("order_date", "date"),
            ColumnMeta("quantity", "integer"),
            ColumnMeta("unit_price", "numeric(10, 2)"),
            ColumnMeta("region", "varchar(50)"),
        ),
        indexes=(
            IndexMeta("orders_pkey", ("order_id",), unique=True),
            IndexMeta("orders_user_id_idx", ("user_id",)),
        ),
    ),
    TableSchema(
        schema_name="public",
        table_name="products",
        columns=(
            ColumnMeta("product_id", "integer", nullable=False),
            ColumnMeta("product_line", "varchar(100)"),
            ColumnMeta("category", "varchar(100)"),
        ),
        indexes=(IndexMeta("products_pkey", ("product_id",), unique=True),),
    ),
]


def get_default_registry() -> SchemaRegistry:
    """Get the sample schema registry (users, orders, products)."""
    return SchemaRegistry(tables=_DEFAULT_TABLES)
