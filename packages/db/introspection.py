"""
Live schema introspection.

Implements the builder's ``SchemaProvider`` interface on top of
``sqlalchemy.inspect``, so any database SQLAlchemy can reach can feed
table metadata to a builder session.
"""

from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from packages.core.schema_registry.registry import (
    ColumnMeta,
    IndexMeta,
    SchemaIntrospectionError,
    TableSchema,
)

logger = logging.getLogger(__name__)


class SQLAlchemySchemaProvider:
    """Describes tables of a live database connection."""

    def __init__(self, engine: Engine):
        """
        Initialize the provider.

        Args:
            engine: Engine for the database being queried. An empty
                schema name means the connection's default schema.
        """
        self._engine = engine

    def get_table_schema(self, schema_name: str, table_name: str) -> TableSchema:
        """
        Describe one table.

        Raises:
            SchemaIntrospectionError: If the table does not exist or the
                database cannot be inspected.
        """
        schema = schema_name or None
        try:
            inspector = inspect(self._engine)
            if not inspector.has_table(table_name, schema=schema):
                raise NoSuchTableError(table_name)
            raw_columns = inspector.get_columns(table_name, schema=schema)
            raw_indexes = inspector.get_indexes(table_name, schema=schema)
        except NoSuchTableError as e:
            raise SchemaIntrospectionError(
                f"Table '{table_name}' not found in schema '{schema_name or 'default'}'"
            ) from e
        except SQLAlchemyError as e:
            logger.error("Schema introspection failed for %s: %s", table_name, e)
            raise SchemaIntrospectionError(
                f"Failed to inspect table '{table_name}': {e}"
            ) from e

        columns = tuple(
            ColumnMeta(
                name=col["name"],
                data_type=str(col["type"]),
                nullable=bool(col.get("nullable", True)),
            )
            for col in raw_columns
        )
        indexes = tuple(
            IndexMeta(
                name=idx.get("name") or "",
                columns=tuple(c for c in idx.get("column_names", []) if c),
                unique=bool(idx.get("unique", False)),
            )
            for idx in raw_indexes
        )
        logger.debug(
            "Introspected %s: %d columns, %d indexes",
            table_name,
            len(columns),
            len(indexes),
        )
        return TableSchema(
            schema_name=schema_name,
            table_name=table_name,
            columns=columns,
            indexes=indexes,
        )

    def list_schemas(self) -> list[str]:
        """List schema names visible on the connection."""
        try:
            return inspect(self._engine).get_schema_names()
        except SQLAlchemyError as e:
            raise SchemaIntrospectionError(f"Failed to list schemas: {e}") from e

    def list_tables(self, schema_name: str) -> list[str]:
        """List table names within one schema."""
        try:
            return inspect(self._engine).get_table_names(schema=schema_name or None)
        except SQLAlchemyError as e:
            raise SchemaIntrospectionError(
                f"Failed to list tables in '{schema_name}': {e}"
            ) from e
