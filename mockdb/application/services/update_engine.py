"""Update engine: applies atomic ``__op`` operations to documents.

Write payloads mix literal values with operation tags::

    {"name": "A", "score": {"__op": "Increment", "amount": 5}}

``extract_operations`` splits the two apart without touching the payload,
and ``UpdateEngine.apply_operations`` mutates a document in place,
reporting the relation fields it touched so they can be masked once the
write is stored.
"""

import logging
from numbers import Number
from typing import Any

from mockdb.application.interfaces import Document, DocumentStore
from mockdb.application.services.equality import is_operation, values_equal
from mockdb.domain.entities import UpdateOperation, UpdateOperator
from mockdb.domain.exceptions import (
    InvalidArrayOperationError,
    InvalidUpdateError,
    UnknownOperatorError,
)

logger = logging.getLogger(__name__)


def extract_operations(
    payload: dict[str, Any],
) -> tuple[dict[str, Any], list[UpdateOperation]]:
    """Partition a write payload into literal fields and update operations.

    Raises:
        UnknownOperatorError: if a tag names an operator the engine lacks.
    """
    literal_fields: dict[str, Any] = {}
    operations: list[UpdateOperation] = []

    for key, value in payload.items():
        if not is_operation(value):
            literal_fields[key] = value
            continue

        try:
            operator = UpdateOperator(value["__op"])
        except ValueError:
            raise UnknownOperatorError(key, value["__op"]) from None

        operations.append(
            UpdateOperation(
                field=key,
                operator=operator,
                amount=value.get("amount", 0),
                objects=list(value.get("objects") or []),
            )
        )

    return literal_fields, operations


def _ensure_array(document: Document, key: str) -> list[Any]:
    """Return the list at ``key``, creating an empty one if the field is absent."""
    if document.get(key) is None:
        document[key] = []
    if not isinstance(document[key], list):
        raise InvalidArrayOperationError(key)
    return document[key]


class UpdateEngine:
    """Applies update operations and masks the relation fields they touch."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def apply_operations(
        self,
        document: Document,
        operations: list[UpdateOperation],
        class_name: str,
    ) -> set[str]:
        """Destructively apply ``operations`` to ``document``.

        Returns the fields written by relation operators. They are not
        masked here; the caller commits them with ``mask_relation_fields``
        once the write is certain to be stored.
        """
        if operations:
            logger.debug(
                "Applying %d operation(s) to %s: %s",
                len(operations),
                class_name,
                [(op.field, op.operator.value) for op in operations],
            )

        relation_fields: set[str] = set()
        for operation in operations:
            self._apply(document, operation)
            if operation.operator.is_relation:
                relation_fields.add(operation.field)

        return relation_fields

    def mask_relation_fields(self, class_name: str, fields: set[str]) -> None:
        """Hide ``fields`` from every future response for ``class_name``."""
        for field in sorted(fields):
            self._store.mask_field(class_name, field)

    def _apply(self, document: Document, operation: UpdateOperation) -> None:
        key = operation.field
        operator = operation.operator

        if operator is UpdateOperator.INCREMENT:
            current = document.get(key)
            if current is None:
                current = 0
            if not isinstance(current, Number) or isinstance(current, bool):
                raise InvalidUpdateError(f"Increment requires a numeric field: {key}")
            document[key] = current + operation.amount

        elif operator in (UpdateOperator.ADD, UpdateOperator.ADD_RELATION):
            _ensure_array(document, key).extend(operation.objects)

        elif operator is UpdateOperator.ADD_UNIQUE:
            array = _ensure_array(document, key)
            for element in operation.objects:
                if not any(values_equal(item, element) for item in array):
                    array.append(element)

        elif operator in (UpdateOperator.REMOVE, UpdateOperator.REMOVE_RELATION):
            array = _ensure_array(document, key)
            array[:] = [
                item
                for item in array
                if not any(values_equal(item, element) for element in operation.objects)
            ]

        elif operator is UpdateOperator.DELETE:
            document.pop(key, None)

        else:
            raise UnknownOperatorError(key, operator)
