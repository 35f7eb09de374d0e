"""Domain entities for per-class lifecycle hooks."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class HookStage(str, Enum):
    """Lifecycle stages a hook can be registered for."""

    BEFORE_SAVE = "beforeSave"
    BEFORE_DELETE = "beforeDelete"


@dataclass
class HookRequest:
    """Context handed to a hook callback.

    ``object`` is a copy of the document being saved or deleted, with its
    ``className`` filled in. A ``beforeSave`` hook may mutate it in place or
    return a replacement mapping.
    """

    object: dict[str, Any]
    master: bool = False
    installation_id: str = "mockdb"
    user: Any = None


HookResult = dict[str, Any] | None
HookCallback = Callable[[HookRequest], Awaitable[HookResult] | HookResult]
