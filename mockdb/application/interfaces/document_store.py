"""Abstract store interface (port) for class-partitioned documents."""

from abc import ABC, abstractmethod
from typing import Any

Document = dict[str, Any]


class DocumentStore(ABC):
    """Port for document storage, implemented in the infrastructure layer.

    Collections are created lazily on first reference and only disappear
    on ``reset()``. The store also owns the per-class field masks.
    """

    @abstractmethod
    def get_collection(self, class_name: str) -> dict[str, Document]:
        """Return the mutable id → document mapping for a class, creating it if absent."""
        ...

    @abstractmethod
    def get(self, class_name: str, object_id: str) -> Document | None:
        """Retrieve the stored document (not a copy), or None."""
        ...

    @abstractmethod
    def put(self, class_name: str, object_id: str, document: Document) -> None:
        """Store ``document`` under ``object_id``, replacing any previous one."""
        ...

    @abstractmethod
    def delete(self, class_name: str, object_id: str) -> bool:
        """Remove a document. Returns True if deleted, False if not found."""
        ...

    @abstractmethod
    def next_object_id(self) -> str:
        """Generate a new, never reused object id."""
        ...

    @abstractmethod
    def get_mask(self, class_name: str) -> set[str]:
        """Return the set of fields hidden from responses for a class."""
        ...

    @abstractmethod
    def mask_field(self, class_name: str, field: str) -> None:
        """Hide ``field`` from every response for the class."""
        ...

    @abstractmethod
    def class_names(self) -> list[str]:
        """List classes that have been referenced so far."""
        ...

    @abstractmethod
    def reset(self) -> None:
        """Drop all collections and masks."""
        ...
