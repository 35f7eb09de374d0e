"""Request lifecycle: resolves one normalized object-API request against the store.

Each request runs to completion as one unit:

    Received → HookRunning → Mutating/Matching → Masking → Responded

Hooks are the only suspension point. A hook that raises aborts the
request and its exception reaches the caller unmodified; the store is
only written after every hook and operation succeeded.
"""

import asyncio
import copy
import inspect
import logging
from datetime import datetime, timezone
from typing import Any

from mockdb.application.interfaces import Document, DocumentStore
from mockdb.application.schemas.object_request import (
    FindOptions,
    ObjectRequest,
    ObjectResponse,
    RequestMethod,
)
from mockdb.application.services.equality import serialize_dates
from mockdb.application.services.query_engine import QueryEngine
from mockdb.application.services.relationship_resolver import RelationshipResolver
from mockdb.application.services.update_engine import UpdateEngine, extract_operations
from mockdb.domain.entities import HookCallback, HookRequest, HookStage
from mockdb.domain.exceptions import ObjectNotFoundError
from mockdb.infrastructure.logging.colored_logger import RequestLogger, RequestStage

logger = logging.getLogger(__name__)
rlog = RequestLogger("ObjectRequestService")

NOT_FOUND_CODE = 101
DEFAULT_LIMIT = 100

# Keys a hook result may carry that never reach the store
_HOOK_ONLY_KEYS = ("ACL", "className")


def _now() -> datetime:
    """Current UTC time at millisecond precision, so the wire form is lossless."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _without(document: Document, hidden: set[str] | frozenset[str]) -> Document:
    return {key: value for key, value in document.items() if key not in hidden}


class ObjectRequestService:
    """Handle on one isolated mock backend: store, masks and hooks.

    Orchestrates the query/update engines and the relationship resolver
    for CREATE, FETCH, UPDATE and DELETE requests.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        query_engine: QueryEngine | None = None,
        update_engine: UpdateEngine | None = None,
        resolver: RelationshipResolver | None = None,
        default_limit: int = DEFAULT_LIMIT,
    ):
        self._store = store
        self._query_engine = query_engine or QueryEngine(store)
        self._update_engine = update_engine or UpdateEngine(store)
        self._resolver = resolver or RelationshipResolver(store)
        self._default_limit = default_limit
        self._hooks: dict[str, dict[HookStage, HookCallback]] = {}

    @property
    def store(self) -> DocumentStore:
        return self._store

    # ── Handle management ────────────────────────────────────────────

    def reset(self) -> None:
        """Clear every collection, field mask and registered hook."""
        self._store.reset()
        self._hooks = {}

    def register_hook(
        self, class_name: str, stage: HookStage | str, callback: HookCallback
    ) -> None:
        """Register ``callback`` for a class and stage, replacing any previous one.

        Raises:
            ValueError: if ``stage`` is not a supported hook stage.
        """
        stage = HookStage(stage)
        self._hooks.setdefault(class_name, {})[stage] = callback
        logger.debug("Registered %s hook for %s", stage.value, class_name)

    def get_hook(self, class_name: str, stage: HookStage | str) -> HookCallback | None:
        return self._hooks.get(class_name, {}).get(HookStage(stage))

    # ── Entry points ─────────────────────────────────────────────────

    async def handle(self, request: ObjectRequest | dict[str, Any]) -> ObjectResponse:
        """Resolve one request and return its ``{status, response}`` envelope."""
        if not isinstance(request, ObjectRequest):
            request = ObjectRequest.model_validate(request)

        if request.method is RequestMethod.CREATE:
            handler, stage = self._create, RequestStage.CREATE
        elif request.method is RequestMethod.UPDATE:
            handler, stage = self._update, RequestStage.UPDATE
        elif request.method is RequestMethod.DELETE:
            handler, stage = self._delete, RequestStage.DELETE
        elif request.object_id:
            handler, stage = self._fetch, RequestStage.FETCH
        else:
            handler, stage = self._find, RequestStage.FIND

        label = request.class_name
        if request.object_id:
            label = f"{label}/{request.object_id}"

        with rlog.timed_step(stage, label):
            try:
                response = await handler(request)
            except ObjectNotFoundError as e:
                rlog.detail(str(e))
                response = ObjectResponse(
                    status=404,
                    response={
                        "code": NOT_FOUND_CODE,
                        "error": f"object not found for {request.method.value.lower()}",
                    },
                )
        return response

    def handle_sync(self, request: ObjectRequest | dict[str, Any]) -> ObjectResponse:
        """Run ``handle`` to completion for callers without an event loop."""
        return asyncio.run(self.handle(request))

    # ── Handlers ─────────────────────────────────────────────────────

    async def _create(self, request: ObjectRequest) -> ObjectResponse:
        class_name = request.class_name
        payload = await self._run_hook(class_name, HookStage.BEFORE_SAVE, request.data)

        literal_fields, operations = extract_operations(payload)
        now = _now()
        document = {
            **copy.deepcopy(literal_fields),
            "objectId": self._store.next_object_id(),
            "createdAt": now,
            "updatedAt": now,
        }
        relation_fields = self._update_engine.apply_operations(
            document, operations, class_name
        )
        self._update_engine.mask_relation_fields(class_name, relation_fields)
        self._store.put(class_name, document["objectId"], document)

        hidden = self._store.get_mask(class_name) | {"updatedAt"}
        body = serialize_dates(copy.deepcopy(_without(document, hidden)))
        return ObjectResponse(status=201, response=body)

    async def _update(self, request: ObjectRequest) -> ObjectResponse:
        class_name = request.class_name
        existing = self._require(class_name, request.object_id)

        literal_fields, operations = extract_operations(request.data)
        now = _now()
        updated = {
            **copy.deepcopy(existing),
            **copy.deepcopy(literal_fields),
            "updatedAt": now,
        }
        relation_fields = self._update_engine.apply_operations(
            updated, operations, class_name
        )

        result = await self._run_hook(class_name, HookStage.BEFORE_SAVE, updated)
        # Identity and creation time are immutable whatever the payload or hook said
        result.update(
            objectId=existing["objectId"],
            createdAt=existing["createdAt"],
            updatedAt=now,
        )
        self._update_engine.mask_relation_fields(class_name, relation_fields)
        self._store.put(class_name, existing["objectId"], result)

        hidden = self._store.get_mask(class_name) | {"createdAt", "objectId"}
        body = serialize_dates(copy.deepcopy(_without(result, hidden)))
        return ObjectResponse(status=200, response=body)

    async def _delete(self, request: ObjectRequest) -> ObjectResponse:
        class_name = request.class_name
        existing = (
            self._store.get(class_name, request.object_id) if request.object_id else None
        )
        if existing is None:
            # Deleting an absent object is reported as a success
            logger.info(
                "Delete of absent %s/%s reported as success", class_name, request.object_id
            )
            return ObjectResponse(status=200, response={})

        await self._run_hook(class_name, HookStage.BEFORE_DELETE, existing)
        self._store.delete(class_name, request.object_id)
        return ObjectResponse(status=200, response={})

    async def _fetch(self, request: ObjectRequest) -> ObjectResponse:
        class_name = request.class_name
        existing = self._require(class_name, request.object_id)
        body = _without(copy.deepcopy(existing), self._store.get_mask(class_name))
        return ObjectResponse(status=200, response=serialize_dates(body))

    async def _find(self, request: ObjectRequest) -> ObjectResponse:
        class_name = request.class_name
        options = FindOptions.model_validate(request.data)

        result = self._query_engine.match_collection(
            class_name,
            options.where,
            redirect_key=options.redirect_class_name_for_key,
        )
        matches = result.documents
        rlog.detail(
            "query matched",
            matches=len(matches),
            substituted=result.substituted,
        )

        if options.count:
            return ObjectResponse(status=200, response={"count": len(matches)})

        matches = self._resolver.expand_includes(matches, options.include)

        # Substituted objects were masked by their own class when fetched
        mask = frozenset() if result.substituted else self._store.get_mask(class_name)
        matches = [serialize_dates(_without(match, mask)) for match in matches]

        limit = options.limit or self._default_limit
        start = options.skip
        return ObjectResponse(
            status=200, response={"results": matches[start:start + limit]}
        )

    # ── Private helpers ──────────────────────────────────────────────

    def _require(self, class_name: str, object_id: str | None) -> Document:
        existing = self._store.get(class_name, object_id) if object_id else None
        if existing is None:
            raise ObjectNotFoundError(class_name, object_id)
        return existing

    async def _run_hook(
        self, class_name: str, stage: HookStage, data: Document
    ) -> Document:
        """Run the hook registered for ``stage``, if any, and return the data to proceed with.

        Only ``beforeSave`` hooks may replace the data, by returning a mapping.
        """
        hook = self.get_hook(class_name, stage)
        if hook is None:
            return dict(data)

        hook_request = HookRequest(object={**copy.deepcopy(data), "className": class_name})
        with rlog.timed_step(RequestStage.HOOK, f"{stage.value} {class_name}"):
            outcome = hook(hook_request)
            if inspect.isawaitable(outcome):
                outcome = await outcome

        proceed_with = hook_request.object
        if stage is HookStage.BEFORE_SAVE and outcome is not None:
            proceed_with = dict(outcome)
        return _without(proceed_with, frozenset(_HOOK_ONLY_KEYS))
