from .hook import HookCallback, HookRequest, HookResult, HookStage
from .query import (
    OR_KEY,
    Matched,
    MatchOutcome,
    QueryOperator,
    QueryResult,
    Substitute,
)
from .update_operation import UpdateOperation, UpdateOperator

__all__ = [
    "HookCallback",
    "HookRequest",
    "HookResult",
    "HookStage",
    "OR_KEY",
    "Matched",
    "MatchOutcome",
    "QueryOperator",
    "QueryResult",
    "Substitute",
    "UpdateOperation",
    "UpdateOperator",
]
