"""Unit tests for the ObjectRequestService: request lifecycle, hooks and masking."""

import re

import pytest

from mockdb.application.schemas import ObjectRequest, RequestMethod
from mockdb.application.services import ObjectRequestService
from mockdb.domain.entities import HookRequest, HookStage
from mockdb.domain.exceptions import (
    HookRejectedError,
    InvalidArrayOperationError,
    UnknownOperatorError,
)
from mockdb.infrastructure.storage.in_memory_document_store import InMemoryDocumentStore

_WIRE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def service(store) -> ObjectRequestService:
    return ObjectRequestService(store, default_limit=3)


def _request(method: str, class_name: str, object_id: str | None = None, data: dict | None = None) -> dict:
    return {"method": method, "className": class_name, "objectId": object_id, "data": data or {}}


async def _create(service: ObjectRequestService, class_name: str, data: dict) -> dict:
    response = await service.handle(_request("CREATE", class_name, data=data))
    assert response.status == 201
    return response.response


# ── Tests ────────────────────────────────────────────────────────────


class TestCreate:
    async def test_assigns_id_and_creation_time(self, service, store):
        body = await _create(service, "Player", {"name": "A"})

        assert body["name"] == "A"
        assert body["objectId"]
        assert _WIRE_DATE.match(body["createdAt"])
        assert "updatedAt" not in body

        stored = store.get("Player", body["objectId"])
        assert stored["createdAt"] == stored["updatedAt"]

    async def test_applies_operations(self, service, store):
        body = await _create(service, "Player", {"name": "A", "score": {"__op": "Increment", "amount": 5}})

        assert body["score"] == 5
        assert store.get("Player", body["objectId"])["score"] == 5

    async def test_accepts_request_model(self, service):
        request = ObjectRequest(method=RequestMethod.CREATE, class_name="Player", data={"n": 1})

        response = await service.handle(request)

        assert response.status == 201
        assert response.response["n"] == 1

    async def test_client_cannot_choose_object_id(self, service):
        body = await _create(service, "Player", {"objectId": "mine"})
        assert body["objectId"] != "mine"

    async def test_relation_fields_are_hidden(self, service, store):
        pointer = {"__type": "Pointer", "className": "Player", "objectId": "x"}
        body = await _create(
            service, "Team", {"name": "Red", "members": {"__op": "AddRelation", "objects": [pointer]}}
        )

        assert "members" not in body
        assert store.get("Team", body["objectId"])["members"] == [pointer]

    async def test_unknown_operator_aborts_without_writing(self, service, store):
        with pytest.raises(UnknownOperatorError):
            await service.handle(_request("CREATE", "Player", data={"x": {"__op": "Bogus"}}))

        assert store.get_collection("Player") == {}

    async def test_does_not_touch_caller_payload(self, service):
        payload = {"tags": {"__op": "Add", "objects": [1]}}

        await _create(service, "Player", payload)

        assert payload == {"tags": {"__op": "Add", "objects": [1]}}


class TestUpdate:
    async def test_merges_literals_and_operations(self, service, store):
        created = await _create(service, "Player", {"name": "A", "tags": [1]})
        object_id = created["objectId"]

        response = await service.handle(
            _request(
                "UPDATE",
                "Player",
                object_id,
                {"level": 2, "tags": {"__op": "AddUnique", "objects": [1, 2, 2]}},
            )
        )

        assert response.status == 200
        assert response.response["tags"] == [1, 2]
        assert response.response["level"] == 2
        assert _WIRE_DATE.match(response.response["updatedAt"])
        assert "createdAt" not in response.response
        assert "objectId" not in response.response

        stored = store.get("Player", object_id)
        assert stored["name"] == "A"
        assert stored["tags"] == [1, 2]

    async def test_created_at_is_immutable(self, service, store):
        created = await _create(service, "Player", {"name": "A"})
        object_id = created["objectId"]
        original = store.get("Player", object_id)["createdAt"]

        await service.handle(_request("UPDATE", "Player", object_id, {"createdAt": "yesterday"}))

        stored = store.get("Player", object_id)
        assert stored["createdAt"] == original
        assert stored["updatedAt"] >= original

    async def test_missing_object_is_404(self, service):
        response = await service.handle(_request("UPDATE", "Player", "nope", {"a": 1}))

        assert response.status == 404
        assert response.response == {"code": 101, "error": "object not found for update"}

    async def test_array_operation_on_scalar_aborts(self, service, store):
        created = await _create(service, "Player", {"tags": "x"})

        with pytest.raises(InvalidArrayOperationError):
            await service.handle(
                _request("UPDATE", "Player", created["objectId"], {"tags": {"__op": "Add", "objects": [1]}})
            )

        assert store.get("Player", created["objectId"])["tags"] == "x"

    async def test_failed_operation_leaves_relation_field_visible(self, service, store):
        created = await _create(service, "Team", {"name": "Red", "tags": "x", "members": []})
        pointer = {"__type": "Pointer", "className": "Player", "objectId": "p1"}

        with pytest.raises(InvalidArrayOperationError):
            await service.handle(
                _request(
                    "UPDATE",
                    "Team",
                    created["objectId"],
                    {
                        "members": {"__op": "AddRelation", "objects": [pointer]},
                        "tags": {"__op": "Add", "objects": [1]},
                    },
                )
            )

        assert store.get_mask("Team") == set()
        fetched = await service.handle(_request("FETCH", "Team", created["objectId"]))
        assert fetched.response["members"] == []


class TestDelete:
    async def test_removes_object(self, service, store):
        created = await _create(service, "Player", {"name": "A"})

        response = await service.handle(_request("DELETE", "Player", created["objectId"]))

        assert response.status == 200
        assert response.response == {}
        assert store.get("Player", created["objectId"]) is None

    async def test_absent_object_reports_success(self, service):
        calls: list[HookRequest] = []
        service.register_hook("Player", HookStage.BEFORE_DELETE, calls.append)

        response = await service.handle(_request("DELETE", "Player", "nope"))

        assert response.status == 200
        assert response.response == {}
        assert calls == []


class TestFetch:
    async def test_round_trip(self, service):
        created = await _create(service, "Player", {"name": "A", "stats": {"hp": 3}, "tags": [1]})

        response = await service.handle(_request("FETCH", "Player", created["objectId"]))

        assert response.status == 200
        body = response.response
        assert body["name"] == "A"
        assert body["stats"] == {"hp": 3}
        assert body["tags"] == [1]
        assert body["createdAt"] == created["createdAt"]
        assert _WIRE_DATE.match(body["updatedAt"])

    async def test_missing_object_is_404(self, service):
        response = await service.handle(_request("FETCH", "Player", "nope"))

        assert response.status == 404
        assert response.response["code"] == 101

    async def test_masked_fields_are_hidden(self, service):
        created = await _create(
            service, "Team", {"members": {"__op": "AddRelation", "objects": []}, "name": "Red"}
        )

        response = await service.handle(_request("FETCH", "Team", created["objectId"]))

        assert "members" not in response.response
        assert response.response["name"] == "Red"


class TestFind:
    async def test_filters_and_serializes_dates(self, service):
        await _create(service, "Player", {"age": 17})
        await _create(service, "Player", {"age": 21})

        response = await service.handle(_request("FETCH", "Player", data={"where": {"age": {"$gte": 18}}}))

        results = response.response["results"]
        assert [r["age"] for r in results] == [21]
        assert _WIRE_DATE.match(results[0]["createdAt"])
        assert _WIRE_DATE.match(results[0]["updatedAt"])

    async def test_count_only(self, service):
        for age in (1, 2, 3, 4):
            await _create(service, "Player", {"age": age})

        response = await service.handle(
            _request("FETCH", "Player", data={"where": {"age": {"$gt": 1}}, "count": 1, "limit": 0})
        )

        assert response.response == {"count": 3}

    async def test_default_limit_applies(self, service):
        for age in range(5):
            await _create(service, "Player", {"age": age})

        response = await service.handle(_request("FETCH", "Player", data={"where": {}}))

        assert [r["age"] for r in response.response["results"]] == [0, 1, 2]

    async def test_skip_and_limit_slice_unpaginated_order(self, service):
        for age in range(6):
            await _create(service, "Player", {"age": age})

        full = await service.handle(_request("FETCH", "Player", data={"limit": 100}))
        page = await service.handle(_request("FETCH", "Player", data={"skip": 2, "limit": 3}))

        assert page.response["results"] == full.response["results"][2:5]

    async def test_includes_and_masks(self, service):
        owner = await _create(service, "Player", {"name": "Ann"})
        pointer = {"__type": "Pointer", "className": "Player", "objectId": owner["objectId"]}
        await _create(
            service,
            "Team",
            {"owner": pointer, "members": {"__op": "AddRelation", "objects": [pointer]}},
        )

        response = await service.handle(_request("FETCH", "Team", data={"include": "owner"}))

        team = response.response["results"][0]
        assert "members" not in team
        assert team["owner"]["__type"] == "Object"
        assert team["owner"]["name"] == "Ann"
        assert _WIRE_DATE.match(team["owner"]["createdAt"])

    async def test_included_objects_hide_their_own_masked_fields(self, service):
        member = await _create(service, "Member", {"name": "Ann"})
        pointer = {"__type": "Pointer", "className": "Member", "objectId": member["objectId"]}
        team = await _create(
            service, "Team", {"name": "T", "members": {"__op": "AddRelation", "objects": [pointer]}}
        )
        await _create(
            service,
            "Player",
            {"name": "Bob", "team": {"__type": "Pointer", "className": "Team", "objectId": team["objectId"]}},
        )

        response = await service.handle(_request("FETCH", "Player", data={"include": "team"}))

        included = response.response["results"][0]["team"]
        assert included["name"] == "T"
        assert "members" not in included

    async def test_relation_query_substitutes_related_objects(self, service):
        ann = await _create(service, "Player", {"name": "Ann"})
        await _create(service, "Player", {"name": "Bob"})
        pointer = {"__type": "Pointer", "className": "Player", "objectId": ann["objectId"]}
        team = await _create(
            service, "Team", {"members": {"__op": "AddRelation", "objects": [pointer]}}
        )

        response = await service.handle(
            _request(
                "FETCH",
                "Team",
                data={
                    "where": {
                        "$relatedTo": {
                            "object": {"__type": "Pointer", "className": "Team", "objectId": team["objectId"]},
                            "key": "members",
                        }
                    },
                    "redirectClassNameForKey": "members",
                },
            )
        )

        assert [r["name"] for r in response.response["results"]] == ["Ann"]

    async def test_substituted_objects_use_their_own_class_mask(self, service, store):
        ann = await _create(service, "Player", {"name": "Ann", "nickname": "A"})
        pointer = {"__type": "Pointer", "className": "Player", "objectId": ann["objectId"]}
        team = await _create(
            service, "Team", {"members": {"__op": "AddRelation", "objects": [pointer]}}
        )
        store.mask_field("Player", "nickname")
        store.mask_field("Team", "name")

        response = await service.handle(
            _request(
                "FETCH",
                "Team",
                data={
                    "where": {
                        "$relatedTo": {
                            "object": {"__type": "Pointer", "className": "Team", "objectId": team["objectId"]},
                            "key": "members",
                        }
                    },
                    "redirectClassNameForKey": "members",
                },
            )
        )

        [related] = response.response["results"]
        assert related["name"] == "Ann"
        assert "nickname" not in related


class TestHooks:
    async def test_before_save_can_replace_payload(self, service, store):
        async def before_save(request: HookRequest):
            assert request.object["className"] == "Player"
            return {**request.object, "name": request.object["name"].upper(), "ACL": {"*": {}}}

        service.register_hook("Player", "beforeSave", before_save)

        body = await _create(service, "Player", {"name": "ann"})

        stored = store.get("Player", body["objectId"])
        assert stored["name"] == "ANN"
        assert "ACL" not in stored
        assert "className" not in stored

    async def test_sync_hook_mutating_in_place(self, service, store):
        def before_save(request: HookRequest):
            request.object["touched"] = True

        service.register_hook("Player", HookStage.BEFORE_SAVE, before_save)

        body = await _create(service, "Player", {"name": "ann"})

        assert store.get("Player", body["objectId"])["touched"] is True

    async def test_before_save_runs_on_merged_update(self, service, store):
        created = await _create(service, "Player", {"name": "ann", "score": 1})
        seen: list[dict] = []

        async def before_save(request: HookRequest):
            seen.append(dict(request.object))

        service.register_hook("Player", HookStage.BEFORE_SAVE, before_save)
        await service.handle(
            _request("UPDATE", "Player", created["objectId"], {"score": {"__op": "Increment", "amount": 2}})
        )

        assert len(seen) == 1
        assert seen[0]["name"] == "ann"
        assert seen[0]["score"] == 3

    async def test_rejected_hook_propagates_and_writes_nothing(self, service, store):
        async def before_save(request: HookRequest):
            raise HookRejectedError("no saving today")

        service.register_hook("Player", HookStage.BEFORE_SAVE, before_save)

        with pytest.raises(HookRejectedError, match="no saving today"):
            await service.handle(_request("CREATE", "Player", data={"name": "A"}))

        assert store.get_collection("Player") == {}

    async def test_rejected_update_keeps_stored_document(self, service, store):
        created = await _create(service, "Player", {"name": "A"})

        def before_save(request: HookRequest):
            raise ValueError("nope")

        service.register_hook("Player", HookStage.BEFORE_SAVE, before_save)

        with pytest.raises(ValueError):
            await service.handle(_request("UPDATE", "Player", created["objectId"], {"name": "B"}))

        assert store.get("Player", created["objectId"])["name"] == "A"

    async def test_rejected_update_does_not_mask_relation_field(self, service, store):
        created = await _create(service, "Team", {"name": "Red", "members": []})
        pointer = {"__type": "Pointer", "className": "Player", "objectId": "p1"}

        async def before_save(request: HookRequest):
            raise HookRejectedError("locked")

        service.register_hook("Team", HookStage.BEFORE_SAVE, before_save)

        with pytest.raises(HookRejectedError):
            await service.handle(
                _request(
                    "UPDATE",
                    "Team",
                    created["objectId"],
                    {"members": {"__op": "AddRelation", "objects": [pointer]}},
                )
            )

        assert store.get_mask("Team") == set()
        assert store.get("Team", created["objectId"])["members"] == []

    async def test_before_delete_can_block(self, service, store):
        created = await _create(service, "Player", {"name": "A"})

        async def before_delete(request: HookRequest):
            raise HookRejectedError("protected")

        service.register_hook("Player", HookStage.BEFORE_DELETE, before_delete)

        with pytest.raises(HookRejectedError):
            await service.handle(_request("DELETE", "Player", created["objectId"]))

        assert store.get("Player", created["objectId"]) is not None

    async def test_unsupported_stage_is_rejected(self, service):
        with pytest.raises(ValueError):
            service.register_hook("Player", "afterSave", lambda request: None)

    async def test_reset_clears_store_and_hooks(self, service, store):
        service.register_hook("Player", HookStage.BEFORE_SAVE, lambda request: None)
        await _create(service, "Player", {"name": "A"})

        service.reset()

        assert service.get_hook("Player", HookStage.BEFORE_SAVE) is None
        assert store.get_collection("Player") == {}


def test_handle_sync(store):
    service = ObjectRequestService(store)

    response = service.handle_sync(_request("CREATE", "Player", data={"name": "A"}))

    assert response.status == 201
    assert store.get("Player", response.response["objectId"])["name"] == "A"
