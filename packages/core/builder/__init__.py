"""Builder session - the single owner of a query model."""

from .session import QueryBuilderSession

__all__ = [
    "QueryBuilderSession",
]
