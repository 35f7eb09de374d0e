"""Domain entities for atomic update operations embedded in write payloads."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class UpdateOperator(str, Enum):
    """Closed set of ``__op`` tags understood by the update engine."""

    INCREMENT = "Increment"
    ADD = "Add"
    ADD_UNIQUE = "AddUnique"
    REMOVE = "Remove"
    DELETE = "Delete"
    ADD_RELATION = "AddRelation"
    REMOVE_RELATION = "RemoveRelation"

    @property
    def is_relation(self) -> bool:
        """Relation operators hide their field from every response of the class."""
        return self in (UpdateOperator.ADD_RELATION, UpdateOperator.REMOVE_RELATION)


@dataclass(frozen=True)
class UpdateOperation:
    """One ``{__op: ..., ...}`` value lifted out of a write payload.

    ``field`` is the payload key the operation was found under.
    """

    field: str
    operator: UpdateOperator
    amount: int | float = 0
    objects: list[Any] = field(default_factory=list)
