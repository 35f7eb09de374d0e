from .equality import decode_query_value, serialize_dates, values_equal
from .object_request_service import ObjectRequestService
from .query_engine import QueryEngine
from .relationship_resolver import RelationshipResolver
from .update_engine import UpdateEngine, extract_operations

__all__ = [
    "decode_query_value",
    "serialize_dates",
    "values_equal",
    "ObjectRequestService",
    "QueryEngine",
    "RelationshipResolver",
    "UpdateEngine",
    "extract_operations",
]
