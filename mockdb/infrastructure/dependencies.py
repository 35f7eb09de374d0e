"""Dependency wiring: builds an isolated mock backend from settings."""

from mockdb.application.services import (
    ObjectRequestService,
    QueryEngine,
    RelationshipResolver,
    UpdateEngine,
)
from mockdb.config import Settings, get_settings
from mockdb.infrastructure.logging.log_config import setup_logging
from mockdb.infrastructure.storage.in_memory_document_store import InMemoryDocumentStore


def create_mock_db(settings: Settings | None = None) -> ObjectRequestService:
    """Provides an ObjectRequestService with its own store, masks and hooks.

    Every call returns an independent instance, so parallel tests never
    share state. Log levels from ``settings`` are applied on the way.
    """
    settings = settings or get_settings()
    setup_logging(settings)
    store = InMemoryDocumentStore()
    return ObjectRequestService(
        store,
        query_engine=QueryEngine(store),
        update_engine=UpdateEngine(store),
        resolver=RelationshipResolver(store),
        default_limit=settings.default_limit,
    )
