from .object_request import FindOptions, ObjectRequest, ObjectResponse, RequestMethod

__all__ = [
    "FindOptions",
    "ObjectRequest",
    "ObjectResponse",
    "RequestMethod",
]
