"""Domain-specific exceptions: framework-independent."""


class MockDBError(Exception):
    """Base class for every error raised by the engine."""


class ObjectNotFoundError(MockDBError):
    """Raised when a requested object does not exist in its class."""

    def __init__(self, class_name: str, object_id: str | None):
        self.class_name = class_name
        self.object_id = object_id
        super().__init__(f"{class_name} with id '{object_id}' not found")


class InvalidUpdateError(MockDBError):
    """Raised when an update operation cannot be applied."""


class UnknownOperatorError(InvalidUpdateError):
    """Raised when a write payload carries an ``__op`` tag the engine does not know."""

    def __init__(self, key: str, operator: object):
        self.key = key
        self.operator = operator
        super().__init__(f"Unknown update operator: {key} ({operator!r})")


class InvalidArrayOperationError(InvalidUpdateError):
    """Raised when an array operator targets a field holding a non-array value."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Can't perform array operation on non-array field '{field}'")


class InvalidQueryError(MockDBError):
    """Raised when a where clause uses an unsupported operator."""


class HookRejectedError(MockDBError):
    """Raised by a lifecycle hook to veto the request.

    Hooks may raise any exception; the engine propagates it unmodified.
    This class only exists so hook authors have a ready-made one.
    """

    def __init__(self, message: str, code: int = 141):
        self.message = message
        self.code = code
        super().__init__(message)
