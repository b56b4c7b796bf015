from __future__ import annotations

import json
import time
from contextlib import closing
from typing import TYPE_CHECKING

import httpx
import pytest

from betabuddy.adapters.firestore import (
    Document,
    FirestoreDocumentStore,
    encode_string_array,
    encode_user_record,
    parse_user_document,
)
from betabuddy.adapters.http_resilience import ResilientClient
from betabuddy.config import FirestoreConfig, PropagationConfig, RateLimit, ResilienceConfig
from betabuddy.domain.model import EdgeState, RelationshipField
from betabuddy.domain.ports import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStoreError,
    StoreUnavailableError,
    WriteConflictError,
)
from betabuddy.domain.relationships import RelationshipService
from tests.helpers.config import FAST_RETRY
from tests.helpers.users import make_user

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

    Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]

BASE_URL = "https://firestore.test/v1/"
DOCUMENTS = "projects/demo/databases/(default)/documents"


def _error(code: int, status: str) -> httpx.Response:
    return httpx.Response(code, json={"error": {"code": code, "message": status, "status": status}})


class FakeFirestore:
    """Just enough of the Firestore REST surface for the user collection."""

    page_size = 2

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, object]] = {}
        self.requests: list[httpx.Request] = []
        self._clock = 0

    def _stamp(self) -> str:
        self._clock += 1
        return f"2026-10-19T09:00:00.{self._clock:06d}Z"

    def _body(self, user_id: str) -> dict[str, object]:
        return {
            "name": f"{DOCUMENTS}/users/{user_id}",
            **self.documents[user_id],
        }

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        _, _, rest = request.url.path.partition("/documents/users")
        user_id = rest.lstrip("/")
        params = request.url.params
        match request.method:
            case "GET" if not user_id:
                ordered = sorted(self.documents)
                start = int(params.get("pageToken") or 0)
                page = ordered[start : start + self.page_size]
                body: dict[str, object] = {"documents": [self._body(doc) for doc in page]}
                if start + self.page_size < len(ordered):
                    body["nextPageToken"] = str(start + self.page_size)
                return httpx.Response(200, json=body)
            case "GET":
                if user_id not in self.documents:
                    return _error(404, "NOT_FOUND")
                return httpx.Response(200, json=self._body(user_id))
            case "POST":
                new_id = params["documentId"]
                if new_id in self.documents:
                    return _error(409, "ALREADY_EXISTS")
                stamp = self._stamp()
                self.documents[new_id] = {
                    "fields": json.loads(request.content)["fields"],
                    "createTime": stamp,
                    "updateTime": stamp,
                }
                return httpx.Response(200, json=self._body(new_id))
            case "PATCH":
                if user_id not in self.documents:
                    return _error(404, "NOT_FOUND")
                stored = self.documents[user_id]
                expected = params.get("currentDocument.updateTime")
                if expected is not None and expected != stored["updateTime"]:
                    return _error(400, "FAILED_PRECONDITION")
                fields = dict(stored["fields"])  # type: ignore[arg-type]
                incoming = json.loads(request.content)["fields"]
                for name in params.get_list("updateMask.fieldPaths"):
                    fields[name] = incoming[name]
                stored["fields"] = fields
                stored["updateTime"] = self._stamp()
                return httpx.Response(200, json=self._body(user_id))
            case "DELETE":
                if self.documents.pop(user_id, None) is None:
                    return _error(404, "NOT_FOUND")
                return httpx.Response(200, json={})
            case _:
                return _error(400, "INVALID_ARGUMENT")


def _store_for(
    handler: Handler,
    *,
    ratelimit: RateLimit | None = None,
    clients: list[ResilientClient] | None = None,
) -> FirestoreDocumentStore:
    def client_factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001
            base_url=BASE_URL, transport=httpx.MockTransport(handler)
        )
        if clients is not None:
            clients.append(client)
        return client

    resilience = ResilienceConfig(name="firestore", base_url=BASE_URL, ratelimit=ratelimit)
    config = FirestoreConfig(project_id="demo", resilience=resilience)
    return FirestoreDocumentStore(config=config, client_factory=client_factory)


@pytest.fixture
def fake() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def firestore_store(fake: FakeFirestore) -> Iterator[FirestoreDocumentStore]:
    store = _store_for(fake)
    yield store
    store.close()


def test_create_and_fetch(firestore_store: FirestoreDocumentStore, fake: FakeFirestore) -> None:
    created = firestore_store.create(make_user("alice", sent={"bob"}))

    fetched = firestore_store.fetch("alice")

    assert created.revision == fake.documents["alice"]["updateTime"]
    assert fetched == created
    assert fetched.sent_friend_requests == frozenset({"bob"})
    assert fetched.friends == frozenset()
    post = fake.requests[0]
    assert post.url.params["documentId"] == "alice"
    assert post.url.path == f"/v1/{DOCUMENTS}/users"


def test_update_sends_mask_and_precondition(
    firestore_store: FirestoreDocumentStore, fake: FakeFirestore
) -> None:
    created = firestore_store.create(make_user("alice", friends={"carol"}))

    revision = firestore_store.update_fields(
        "alice",
        {RelationshipField.SENT_REQUESTS: ["bob"]},
        expected_revision=created.revision,
    )

    patch = fake.requests[-1]
    assert patch.method == "PATCH"
    assert patch.url.params.get_list("updateMask.fieldPaths") == ["sentFriendRequests"]
    assert patch.url.params["currentDocument.updateTime"] == created.revision
    assert json.loads(patch.content)["fields"] == {
        "sentFriendRequests": {"arrayValue": {"values": [{"stringValue": "bob"}]}}
    }
    fetched = firestore_store.fetch("alice")
    assert fetched.revision == revision
    assert fetched.friends == frozenset({"carol"})
    assert fetched.sent_friend_requests == frozenset({"bob"})


def test_unconditional_update_requires_existing_document(
    firestore_store: FirestoreDocumentStore, fake: FakeFirestore
) -> None:
    firestore_store.create(make_user("alice"))

    firestore_store.update_fields("alice", {RelationshipField.FRIENDS: []})

    assert fake.requests[-1].url.params["currentDocument.exists"] == "true"


def test_error_statuses_map_to_store_errors(
    firestore_store: FirestoreDocumentStore,
) -> None:
    created = firestore_store.create(make_user("alice"))
    firestore_store.update_fields("alice", {RelationshipField.FRIENDS: ["bob"]})

    with pytest.raises(WriteConflictError):
        firestore_store.update_fields(
            "alice", {RelationshipField.FRIENDS: []}, expected_revision=created.revision
        )
    with pytest.raises(DocumentExistsError):
        firestore_store.create(make_user("alice"))
    with pytest.raises(DocumentNotFoundError):
        firestore_store.fetch("ghost")
    with pytest.raises(DocumentNotFoundError):
        firestore_store.delete("ghost")


def test_list_ids_follows_pages(
    firestore_store: FirestoreDocumentStore, fake: FakeFirestore
) -> None:
    for user_id in ("erin", "alice", "dave", "bob", "carol"):
        firestore_store.create(make_user(user_id))
    fake.requests.clear()

    assert firestore_store.list_ids() == ["alice", "bob", "carol", "dave", "erin"]
    assert len(fake.requests) == 3
    assert fake.requests[0].url.params["mask.fieldPaths"] == "userId"


def test_delete(firestore_store: FirestoreDocumentStore, fake: FakeFirestore) -> None:
    firestore_store.create(make_user("alice"))

    firestore_store.delete("alice")

    assert fake.documents == {}


@pytest.mark.parametrize("status_code", [429, 503])
def test_throttling_and_outages_are_unavailable(status_code: int) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return _error(status_code, "UNAVAILABLE")

    with closing(_store_for(handler)) as store, pytest.raises(StoreUnavailableError):
        store.fetch("alice")


def test_transport_errors_are_unavailable() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with closing(_store_for(handler)) as store, pytest.raises(StoreUnavailableError) as excinfo:
        store.list_ids()

    assert "connection refused" in str(excinfo.value)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(403, json={"error": {"code": 403, "status": "PERMISSION_DENIED"}}),
        httpx.Response(200, content=b"<html>proxy error</html>"),
        httpx.Response(200, json={"name": f"{DOCUMENTS}/users/alice", "fields": []}),
    ],
)
def test_unusable_responses_are_store_errors(response: httpx.Response) -> None:
    async def handler(_: httpx.Request) -> httpx.Response:
        return response

    with closing(_store_for(handler)) as store, pytest.raises(DocumentStoreError) as excinfo:
        store.fetch("alice")

    assert excinfo.value.user_id == "alice"
    assert not isinstance(excinfo.value, StoreUnavailableError)


def test_rate_limit_is_shared_by_every_call(fake: FakeFirestore) -> None:
    clients: list[ResilientClient] = []
    store = _store_for(fake, ratelimit=RateLimit(max_calls=1, per_seconds=0.2), clients=clients)
    with closing(store):
        store.create(make_user("alice"))
        started = time.monotonic()
        for _ in range(3):
            store.fetch("alice")
        elapsed = time.monotonic() - started

    assert len(clients) == 1
    assert elapsed >= 0.3


def test_closed_store_starts_a_fresh_client(fake: FakeFirestore) -> None:
    clients: list[ResilientClient] = []
    store = _store_for(fake, clients=clients)

    store.create(make_user("alice"))
    store.close()
    store.close()
    record = store.fetch("alice")
    store.close()

    assert record.user_id == "alice"
    assert len(clients) == 2


def test_relationships_over_firestore(firestore_store: FirestoreDocumentStore) -> None:
    for user_id in ("alice", "bob"):
        firestore_store.create(make_user(user_id))
    service = RelationshipService(firestore_store, config=PropagationConfig(retry=FAST_RETRY))

    assert service.send_request("alice", "bob").applied
    assert service.accept("bob", "alice").applied

    assert service.relationship_state("bob", "alice") is EdgeState.FRIENDS


def test_translator_round_trip_keeps_wire_shape() -> None:
    record = make_user("alice", friends={"bob"})
    fields = encode_user_record(record)

    assert fields["userId"] == {"stringValue": "alice"}
    assert fields["receivedFriendRequests"] == encode_string_array([]) == {"arrayValue": {}}

    document = Document.model_validate(
        {"name": f"{DOCUMENTS}/users/alice", "fields": fields, "updateTime": "t1"}
    )
    assert parse_user_document(document) == record.with_fields({}, revision="t1")


def test_documents_without_user_id_field_use_document_name() -> None:
    document = Document.model_validate(
        {
            "name": f"{DOCUMENTS}/users/bob",
            "fields": {"friends": {"arrayValue": {"values": [{"stringValue": "alice"}]}}},
            "updateTime": "t2",
        }
    )

    record = parse_user_document(document)

    assert record.user_id == "bob"
    assert record.friends == frozenset({"alice"})
