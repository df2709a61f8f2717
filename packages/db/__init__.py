"""Database access: engine configuration and live schema introspection."""

from packages.db.base import get_database_url, get_engine
from packages.db.introspection import SQLAlchemySchemaProvider

__all__ = ["SQLAlchemySchemaProvider", "get_database_url", "get_engine"]
