"""Query engine: evaluates where clauses against stored documents.

A where clause maps field paths to constraints::

    {"age": {"$gte": 18}, "owner.name": "Ann", "$or": [{...}, {...}]}

Each constraint is a literal (equality), a Pointer/Date envelope
(equality after decoding), or a mapping of operator → operand that must
all hold. Dotted paths walk nested documents.

Evaluation returns a ``MatchOutcome``: either ``Matched(bool)`` or
``Substitute(documents)``, the latter produced by ``$relatedTo`` when the
request wants the related objects themselves.
"""

import copy
import logging
import re
from typing import Any

from mockdb.application.interfaces import Document, DocumentStore
from mockdb.application.services.equality import (
    decode_query_value,
    is_date,
    is_pointer,
    values_equal,
)
from mockdb.domain.entities import (
    OR_KEY,
    Matched,
    MatchOutcome,
    QueryOperator,
    QueryResult,
    Substitute,
)
from mockdb.domain.exceptions import InvalidQueryError

logger = logging.getLogger(__name__)

_QUOTE_MARKERS = re.compile(r"(\\Q|\\E)")

_ORDERING = {
    QueryOperator.LT: lambda subject, operand: subject < operand,
    QueryOperator.LTE: lambda subject, operand: subject <= operand,
    QueryOperator.GT: lambda subject, operand: subject > operand,
    QueryOperator.GTE: lambda subject, operand: subject >= operand,
}


def _combine_all(outcomes: list[MatchOutcome]) -> MatchOutcome:
    """AND over outcomes; the first substitution wins over any boolean."""
    for outcome in outcomes:
        if isinstance(outcome, Substitute):
            return outcome
    return Matched(all(outcome.value for outcome in outcomes))


def _combine_any(outcomes: list[MatchOutcome]) -> MatchOutcome:
    """OR over outcomes; the first substitution wins over any boolean."""
    for outcome in outcomes:
        if isinstance(outcome, Substitute):
            return outcome
    return Matched(any(outcome.value for outcome in outcomes))


class QueryEngine:
    """Matches where clauses against the collections of a DocumentStore."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def match_collection(
        self,
        class_name: str,
        where: dict[str, Any] | None,
        *,
        redirect_key: str | None = None,
    ) -> QueryResult:
        """Return deep copies of every document of ``class_name`` matching ``where``.

        With ``redirect_key`` set, a ``$relatedTo`` constraint yields the
        related objects instead, without the fields masked for their own
        class, and the result is flagged as substituted.
        """
        where = where or {}
        indirect = bool(redirect_key)
        logger.debug("Matching %s where=%s indirect=%s", class_name, where, indirect)

        matches: list[Document] = []
        for document in list(self._store.get_collection(class_name).values()):
            outcome = self.matches(document, where, indirect=indirect)
            if isinstance(outcome, Substitute):
                logger.debug(
                    "Relation query on %s substituted %d related object(s)",
                    class_name,
                    len(outcome.documents),
                )
                return QueryResult(documents=outcome.documents, substituted=True)
            if outcome.value:
                matches.append(document)

        logger.debug("Matched %d document(s) in %s", len(matches), class_name)
        return QueryResult(documents=copy.deepcopy(matches))

    def find(self, class_name: str, where: dict[str, Any] | None) -> list[Document]:
        """Plain sub-query: matching copies, never substituted."""
        return self.match_collection(class_name, where).documents

    def matches(
        self,
        document: Document,
        where: dict[str, Any],
        *,
        indirect: bool = False,
    ) -> MatchOutcome:
        """Evaluate a where clause against one document."""
        if OR_KEY in where:
            return _combine_any(
                [self.matches(document, clause, indirect=indirect) for clause in where[OR_KEY]]
            )

        return _combine_all(
            [
                self.evaluate_field(document, constraint, path, indirect=indirect)
                for path, constraint in where.items()
            ]
        )

    def evaluate_field(
        self,
        document: Document,
        constraint: Any,
        path: str,
        *,
        indirect: bool = False,
    ) -> MatchOutcome:
        """Evaluate the constraint for one (possibly dotted) field path."""
        segments = path.split(".")
        container: Any = document
        for segment in segments[:-1]:
            if not isinstance(container, dict) or not container.get(segment):
                return Matched(False)
            container = container[segment]
        key = segments[-1]

        if not isinstance(container, dict):
            return Matched(False)

        if not isinstance(constraint, dict):
            return Matched(values_equal(container.get(key), constraint))

        # Envelopes stand for scalar values
        if is_pointer(constraint) or is_date(constraint):
            return Matched(
                values_equal(
                    decode_query_value(container.get(key)),
                    decode_query_value(constraint),
                )
            )

        bound_operator = QueryOperator.parse(key)
        if bound_operator is not None:
            return self._apply_operator(
                bound_operator, container, constraint, document, indirect=indirect
            )

        subject = decode_query_value(container.get(key))
        outcomes: list[MatchOutcome] = []
        for name, operand in constraint.items():
            operand = decode_query_value(operand)
            operator = QueryOperator.parse(name)
            if operator is not None:
                outcomes.append(
                    self._apply_operator(operator, subject, operand, document, indirect=indirect)
                )
            elif name.startswith("$"):
                raise InvalidQueryError(f"Unsupported query operator: {name}")
            else:
                # {"address": {"city": "Ghent"}} is equality on a nested field
                nested = subject.get(name) if isinstance(subject, dict) else None
                outcomes.append(Matched(values_equal(nested, operand)))

        return _combine_all(outcomes)

    # ── Operators ────────────────────────────────────────────────────

    def _apply_operator(
        self,
        operator: QueryOperator,
        subject: Any,
        operand: Any,
        document: Document,
        *,
        indirect: bool = False,
    ) -> MatchOutcome:
        """Evaluate one operator against its subject.

        ``subject`` is the stored field value, or the whole document for
        bound operators such as ``$relatedTo``.
        """
        if operator is QueryOperator.EXISTS:
            return Matched(bool(operand) == (subject is not None))

        if operator is QueryOperator.IN:
            return Matched(any(values_equal(subject, value) for value in operand))

        if operator is QueryOperator.NIN:
            return Matched(not any(values_equal(subject, value) for value in operand))

        if operator is QueryOperator.EQ:
            return Matched(values_equal(subject, operand))

        if operator is QueryOperator.NE:
            return Matched(not values_equal(subject, operand))

        if operator in _ORDERING:
            try:
                return Matched(bool(_ORDERING[operator](subject, operand)))
            except TypeError:
                # Incomparable types never match
                return Matched(False)

        if operator is QueryOperator.REGEX:
            if subject is None:
                return Matched(False)
            pattern = _QUOTE_MARKERS.sub("", operand)
            return Matched(re.search(pattern, str(subject)) is not None)

        if operator is QueryOperator.SELECT:
            query = operand["query"]
            foreign_key = operand["key"]
            sub_matches = self.find(query["className"], query.get("where"))
            return Matched(
                any(values_equal(match.get(foreign_key), subject) for match in sub_matches)
            )

        if operator is QueryOperator.IN_QUERY:
            if not isinstance(subject, dict):
                return Matched(False)
            sub_matches = self.find(operand["className"], operand.get("where"))
            return Matched(
                any(match.get("objectId") == subject.get("objectId") for match in sub_matches)
            )

        if operator is QueryOperator.ALL:
            items = subject if isinstance(subject, list) else []
            return Matched(
                all(any(values_equal(item, element) for item in items) for element in operand)
            )

        if operator is QueryOperator.RELATED_TO:
            return self._related_to(subject, operand, indirect=indirect)

        raise InvalidQueryError(f"Unsupported query operator: {operator.value}")

    def _related_to(
        self,
        subject: Any,
        operand: dict[str, Any],
        *,
        indirect: bool,
    ) -> MatchOutcome:
        """Join through the relation array ``operand.key`` of ``operand.object``."""
        owner_pointer = operand["object"]
        owner = self._store.get(owner_pointer["className"], owner_pointer["objectId"])
        relations = (owner or {}).get(operand["key"]) or []

        if not indirect:
            return Matched(values_equal(relations, subject))

        related: list[Document] = []
        for relation in relations:
            mask = self._store.get_mask(relation["className"])
            related.extend(
                {key: value for key, value in match.items() if key not in mask}
                for match in self.find(relation["className"], {"objectId": relation["objectId"]})
            )
        return Substitute(related)
