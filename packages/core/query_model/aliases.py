"""Table alias allocation."""

from collections.abc import Collection


def allocate_alias(table_name: str, existing_aliases: Collection[str]) -> str:
    """
    Pick a readable alias for a table that is not already in use.

    Tries the lower-cased table name first, then appends ``_1``, ``_2``,
    ... until the candidate is free.

    Examples:
        allocate_alias("Users", set())               -> "users"
        allocate_alias("users", {"users"})           -> "users_1"
        allocate_alias("users", {"users", "users_1"}) -> "users_2"
    """
    base = table_name.lower()
    if base not in existing_aliases:
        return base

    counter = 1
    while f"{base}_{counter}" in existing_aliases:
        counter += 1
    return f"{base}_{counter}"
