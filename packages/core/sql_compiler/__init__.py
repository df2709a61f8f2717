"""SQL compilation for the query builder: dialects, literals and the compiler."""

from .compiler import NO_TABLES_SQL, SQLCompiler, compile_query
from .dialects import (
    Dialect,
    DialectAdapter,
    MySQLAdapter,
    PostgresAdapter,
    SQLiteAdapter,
    SQLServerAdapter,
    get_adapter,
)
from .formatter import ValueFormatter, format_value

__all__ = [
    "NO_TABLES_SQL",
    "Dialect",
    "DialectAdapter",
    "MySQLAdapter",
    "PostgresAdapter",
    "SQLCompiler",
    "SQLiteAdapter",
    "SQLServerAdapter",
    "ValueFormatter",
    "compile_query",
    "format_value",
    "get_adapter",
]
