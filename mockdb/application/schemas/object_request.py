"""Pydantic DTOs for the normalized object-API request and response envelopes."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RequestMethod(str, Enum):
    """Object-API verbs understood by the request lifecycle."""

    CREATE = "CREATE"
    FETCH = "FETCH"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ObjectRequest(BaseModel):
    """One normalized request handed over by the dispatch layer."""

    method: RequestMethod
    class_name: str = Field(..., min_length=1, alias="className", examples=["Player"])
    object_id: str | None = Field(None, alias="objectId")
    data: dict[str, Any] = Field(default_factory=dict, examples=[{"name": "A"}])

    model_config = {"populate_by_name": True}


class ObjectResponse(BaseModel):
    """Status plus body, as a remote backend would answer."""

    status: int
    response: dict[str, Any]


class FindOptions(BaseModel):
    """Query parameters carried in the ``data`` of a FETCH without ``objectId``."""

    where: dict[str, Any] | None = None
    include: str | None = None
    count: bool = False
    limit: int | None = Field(None, ge=0)
    skip: int = Field(0, ge=0)
    redirect_class_name_for_key: str | None = Field(None, alias="redirectClassNameForKey")

    model_config = {"populate_by_name": True, "extra": "ignore"}
