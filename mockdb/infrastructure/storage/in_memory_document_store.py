"""In-memory document storage: the only backing store the engine has.

Layout:
    collections[<className>][<objectId>] = <document>
    masks[<className>] = {<field>, ...}
"""

import itertools
import logging

from mockdb.application.interfaces import Document, DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Implements the DocumentStore port with plain dictionaries.

    Not thread-safe; the engine is single-writer.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._masks: dict[str, set[str]] = {}
        self._ids = itertools.count(1)

    # ── Collections ─────────────────────────────────────────────────

    def get_collection(self, class_name: str) -> dict[str, Document]:
        if class_name not in self._collections:
            self._collections[class_name] = {}
        return self._collections[class_name]

    def get(self, class_name: str, object_id: str) -> Document | None:
        return self.get_collection(class_name).get(object_id)

    def put(self, class_name: str, object_id: str, document: Document) -> None:
        self.get_collection(class_name)[object_id] = document

    def delete(self, class_name: str, object_id: str) -> bool:
        collection = self.get_collection(class_name)
        if object_id not in collection:
            return False
        del collection[object_id]
        return True

    def next_object_id(self) -> str:
        return str(next(self._ids))

    def class_names(self) -> list[str]:
        return list(self._collections)

    # ── Field masks ─────────────────────────────────────────────────

    def get_mask(self, class_name: str) -> set[str]:
        if class_name not in self._masks:
            self._masks[class_name] = set()
        return self._masks[class_name]

    def mask_field(self, class_name: str, field: str) -> None:
        mask = self.get_mask(class_name)
        if field not in mask:
            logger.debug("Masking field %s.%s from responses", class_name, field)
        mask.add(field)

    # ── Lifecycle ───────────────────────────────────────────────────

    def reset(self) -> None:
        # Id counter survives so ids stay unique for the life of the store
        logger.debug(
            "Resetting store: classes=%d masks=%d",
            len(self._collections),
            len(self._masks),
        )
        self._collections = {}
        self._masks = {}
