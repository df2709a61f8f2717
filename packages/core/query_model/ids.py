"""Id generators for query model entities."""

import itertools
import uuid
from typing import Protocol


class IdGenerator(Protocol):
    """Returns a fresh, unique id on every call."""

    def __call__(self) -> str:
        ...


class SequentialIdGenerator:
    """
    Deterministic ids: ``<prefix>1``, ``<prefix>2``, ...

    The default for the builder session, so that two sessions fed the
    same edits produce identical models.
    """

    def __init__(self, prefix: str = "n"):
        self._prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


class UuidIdGenerator:
    """Random UUID4 hex ids."""

    def __call__(self) -> str:
        return uuid.uuid4().hex


def create_id_generator(strategy: str) -> IdGenerator:
    """Build the generator named by a settings value."""
    match strategy:
        case "sequential":
            return SequentialIdGenerator()
        case "uuid":
            return UuidIdGenerator()
        case _:
            raise ValueError(f"Unknown id strategy: {strategy}")
