"""mockdb: an in-memory stand-in for a backend-as-a-service object API."""

from mockdb.application.schemas import ObjectRequest, ObjectResponse, RequestMethod
from mockdb.application.services import ObjectRequestService
from mockdb.domain.entities import HookRequest, HookStage
from mockdb.domain.exceptions import (
    HookRejectedError,
    InvalidArrayOperationError,
    InvalidQueryError,
    InvalidUpdateError,
    MockDBError,
    ObjectNotFoundError,
    UnknownOperatorError,
)
from mockdb.infrastructure.dependencies import create_mock_db

__version__ = "0.1.0"
__all__ = [
    "ObjectRequest",
    "ObjectResponse",
    "RequestMethod",
    "ObjectRequestService",
    "HookRequest",
    "HookStage",
    "HookRejectedError",
    "InvalidArrayOperationError",
    "InvalidQueryError",
    "InvalidUpdateError",
    "MockDBError",
    "ObjectNotFoundError",
    "UnknownOperatorError",
    "create_mock_db",
]
