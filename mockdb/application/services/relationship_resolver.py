"""Relationship resolver: expands Pointer fields along include paths."""

import copy
import logging
from typing import Any

from mockdb.application.interfaces import Document, DocumentStore
from mockdb.application.services.equality import OBJECT_TYPE, is_pointer

logger = logging.getLogger(__name__)


class RelationshipResolver:
    """Replaces Pointers with fetched copies of the objects they reference."""

    def __init__(self, store: DocumentStore):
        self._store = store

    def fetch_by_pointer(self, pointer: dict[str, Any]) -> Document | None:
        """Return a deep copy of the referenced object tagged as ``Object``, or None.

        Fields masked for the referenced class are left out.
        """
        class_name = pointer["className"]
        stored = self._store.get(class_name, pointer["objectId"])
        if stored is None:
            return None
        mask = self._store.get_mask(class_name)
        visible = {key: value for key, value in stored.items() if key not in mask}
        return {"__type": OBJECT_TYPE, "className": class_name, **copy.deepcopy(visible)}

    def expand_include_path(self, document: Any, segments: list[str]) -> Any:
        """Expand one dotted include path, already split into segments.

        Missing or empty fields stop the expansion of that branch.
        """
        if not segments or not isinstance(document, dict):
            return document

        head, rest = segments[0], segments[1:]
        target = document.get(head)
        if not target:
            return document

        if isinstance(target, list):
            document[head] = [
                self.expand_include_path(
                    self.fetch_by_pointer(item) if is_pointer(item) else item,
                    rest,
                )
                for item in target
            ]
        else:
            if is_pointer(target):
                document[head] = self.fetch_by_pointer(target)
            self.expand_include_path(document[head], rest)

        return document

    def expand_includes(
        self, documents: list[Document], include_clause: str | None
    ) -> list[Document]:
        """Apply every comma-separated include path to every document in turn."""
        if not include_clause:
            return documents

        paths = [path.strip() for path in include_clause.split(",") if path.strip()]
        logger.debug("Expanding includes %s over %d document(s)", paths, len(documents))
        for document in documents:
            for path in paths:
                self.expand_include_path(document, path.split("."))
        return documents
