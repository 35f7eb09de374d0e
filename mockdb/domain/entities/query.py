"""Domain entities for where-clause evaluation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class QueryOperator(str, Enum):
    """Closed set of operators allowed inside a where clause."""

    EXISTS = "$exists"
    IN = "$in"
    NIN = "$nin"
    EQ = "$eq"
    NE = "$ne"
    LT = "$lt"
    LTE = "$lte"
    GT = "$gt"
    GTE = "$gte"
    REGEX = "$regex"
    SELECT = "$select"
    IN_QUERY = "$inQuery"
    ALL = "$all"
    RELATED_TO = "$relatedTo"

    @classmethod
    def parse(cls, name: str) -> "QueryOperator | None":
        """Return the operator called ``name``, or None if it is not one."""
        try:
            return cls(name)
        except ValueError:
            return None


OR_KEY = "$or"


@dataclass(frozen=True)
class Matched:
    """Ordinary predicate outcome for one document."""

    value: bool


@dataclass(frozen=True)
class Substitute:
    """Outcome that replaces the whole result set of the query.

    Produced by ``$relatedTo`` when the request asks for the related
    objects themselves rather than a per-document boolean.
    """

    documents: list[dict[str, Any]]


MatchOutcome = Matched | Substitute


@dataclass
class QueryResult:
    """Documents returned by a collection match, plus how they were obtained."""

    documents: list[dict[str, Any]] = field(default_factory=list)
    substituted: bool = False
