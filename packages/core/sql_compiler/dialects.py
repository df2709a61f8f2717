"""
Dialect adapters for the SQL compiler.

A dialect decides:
- how identifiers are quoted (only when they need it)
- how string literals are escaped
- how booleans and date/time literals are written
- how LIMIT / OFFSET are spelled

Identifier quoting is delegated to SQLAlchemy's per-dialect
``IdentifierPreparer``, so reserved words and mixed-case names are
quoted exactly as SQLAlchemy itself would quote them.
"""

from enum import Enum

from sqlalchemy.dialects.mssql.base import MSDialect
from sqlalchemy.dialects.mysql.base import MySQLDialect
from sqlalchemy.dialects.postgresql.base import PGDialect
from sqlalchemy.dialects.sqlite.base import SQLiteDialect
from sqlalchemy.engine import Dialect as SQLAlchemyDialect

from packages.core.schema_registry.registry import FieldType


class Dialect(str, Enum):
    """Target databases the compiler can render for."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"


# -----------------------------
# Adapters
# -----------------------------


class DialectAdapter:
    """
    ANSI-flavoured defaults; subclasses override what their database
    does differently.
    """

    dialect: Dialect = Dialect.POSTGRES
    paging_requires_order: bool = False

    def __init__(self, sqlalchemy_dialect: SQLAlchemyDialect):
        self._preparer = sqlalchemy_dialect.identifier_preparer

    def quote_identifier(self, name: str) -> str:
        """Quote ``name`` if the dialect requires it."""
        return self._preparer.quote(name)

    def qualified_column(self, table_alias: str, column_name: str) -> str:
        return f"{self.quote_identifier(table_alias)}.{self.quote_identifier(column_name)}"

    def qualified_table(self, schema_name: str, table_name: str) -> str:
        if not schema_name:
            return self.quote_identifier(table_name)
        return f"{self.quote_identifier(schema_name)}.{self.quote_identifier(table_name)}"

    def escape_string(self, text: str) -> str:
        """Escape the body of a single-quoted string literal."""
        return text.replace("'", "''")

    def quote_string(self, text: str) -> str:
        return f"'{self.escape_string(text)}'"

    def format_boolean(self, value: bool) -> str:
        return "true" if value else "false"

    def format_temporal(self, literal: str, field_type: FieldType) -> str:
        """Hook for dialect-specific date/time casts; plain literal by default."""
        return literal

    def render_pagination(self, limit: int | None, offset: int | None) -> str:
        parts: list[str] = []
        if limit is not None:
            parts.append(f"LIMIT {limit}")
        if offset is not None:
            parts.append(f"OFFSET {offset}")
        return " ".join(parts)


class PostgresAdapter(DialectAdapter):
    dialect = Dialect.POSTGRES


class SQLiteAdapter(DialectAdapter):
    dialect = Dialect.SQLITE


class MySQLAdapter(DialectAdapter):
    """Backtick identifiers; backslash is an escape character in strings."""

    dialect = Dialect.MYSQL

    def escape_string(self, text: str) -> str:
        return text.replace("\\", "\\\\").replace("'", "''")


class SQLServerAdapter(DialectAdapter):
    """Bracket identifiers, BIT booleans and OFFSET ... FETCH paging."""

    dialect = Dialect.SQLSERVER
    paging_requires_order = True

    def format_boolean(self, value: bool) -> str:
        return "1" if value else "0"

    def render_pagination(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset is None:
            return ""
        parts = [f"OFFSET {offset or 0} ROWS"]
        if limit is not None:
            parts.append(f"FETCH NEXT {limit} ROWS ONLY")
        return " ".join(parts)


_ADAPTERS: dict[Dialect, DialectAdapter] = {
    Dialect.POSTGRES: PostgresAdapter(PGDialect()),
    Dialect.MYSQL: MySQLAdapter(MySQLDialect()),
    Dialect.SQLITE: SQLiteAdapter(SQLiteDialect()),
    Dialect.SQLSERVER: SQLServerAdapter(MSDialect()),
}


def get_adapter(dialect: Dialect | str) -> DialectAdapter:
    """Get the adapter for a dialect tag."""
    return _ADAPTERS[Dialect(dialect)]
