from .document_store import Document, DocumentStore

__all__ = [
    "Document",
    "DocumentStore",
]
