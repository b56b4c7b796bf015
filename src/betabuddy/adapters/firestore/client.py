"""Firestore REST implementation of the document store port."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError

from betabuddy.adapters.http_resilience import ResilientClient
from betabuddy.config.firestore import FirestoreConfig, get_firestore_config
from betabuddy.domain.ports import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStoreError,
    StoreUnavailableError,
    WriteConflictError,
)

from .schema import Document, ErrorResponse, ListDocumentsResponse
from .translator import encode_string_array, encode_user_record, parse_user_document

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterable, Mapping

    from betabuddy.config.http_resilience import ResilienceConfig
    from betabuddy.domain.model import RelationshipField, UserRecord

log = getLogger(__name__)

_PAGE_SIZE = 300


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _error_status(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).error.status
    except (ValueError, ValidationError):
        return ""


def _raise_for_status(response: httpx.Response, *, user_id: str | None) -> None:
    if response.is_success:
        return
    status = _error_status(response)
    request = response.request
    message = f"Firestore {request.method} {request.url.path} -> {response.status_code} {status}"
    message = message.rstrip()
    code = response.status_code
    if code == httpx.codes.NOT_FOUND or status == "NOT_FOUND":
        raise DocumentNotFoundError(message, user_id=user_id)
    if status == "ALREADY_EXISTS":
        raise DocumentExistsError(message, user_id=user_id)
    if status in {"FAILED_PRECONDITION", "ABORTED"} or code == httpx.codes.CONFLICT:
        raise WriteConflictError(message, user_id=user_id)
    if code == httpx.codes.TOO_MANY_REQUESTS or code >= httpx.codes.INTERNAL_SERVER_ERROR:
        raise StoreUnavailableError(message, user_id=user_id)
    raise DocumentStoreError(message, user_id=user_id)


def _validated[M: BaseModel](
    model: type[M], response: httpx.Response, *, user_id: str | None
) -> M:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        request = response.request
        raise DocumentStoreError(
            f"Firestore {request.method} {request.url.path} returned an unreadable body: {exc}",
            user_id=user_id,
        ) from exc


def _user_record(document: Document, *, user_id: str) -> UserRecord:
    try:
        return parse_user_document(document)
    except ValidationError as exc:
        raise DocumentStoreError(
            f"Firestore document {document.name} is not a user document: {exc}", user_id=user_id
        ) from exc


@dataclass(slots=True)
class FirestoreDocumentStore:
    """User documents in a Firestore collection, one REST call per operation.

    Conditional writes use ``currentDocument.updateTime``, so a document's
    ``updateTime`` doubles as its revision.

    All calls run on one event loop owned by the store, in a daemon thread
    started on first use. Calling threads block on the result. The loop keeps
    a single :class:`ResilientClient`, so its rate limit covers every call made
    through this store. :meth:`close` shuts both down.
    """

    config: FirestoreConfig = field(default_factory=get_firestore_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False, repr=False)
    _thread: threading.Thread | None = field(default=None, init=False, repr=False)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)
    _startup_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _collection_path(self) -> str:
        return f"{self.config.documents_path}/{self.config.collection}"

    def _document_path(self, user_id: str) -> str:
        return f"{self._collection_path()}/{user_id}"

    def _event_loop(self) -> asyncio.AbstractEventLoop:
        with self._startup_lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="firestore-io", daemon=True
                )
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop

    def _run[T](self, coro: Coroutine[object, object, T]) -> T:
        return asyncio.run_coroutine_threadsafe(coro, self._event_loop()).result()

    def close(self) -> None:
        with self._startup_lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None or thread is None:
            return
        asyncio.run_coroutine_threadsafe(self._close_client(), loop).result()
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def _shared_client(self) -> ResilientClient:
        # only touched from the I/O loop
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    def fetch(self, user_id: str) -> UserRecord:
        return self._run(self._fetch_async(user_id))

    def update_fields(
        self,
        user_id: str,
        fields: Mapping[RelationshipField, Iterable[str]],
        *,
        expected_revision: str | None = None,
    ) -> str:
        return self._run(self._update_async(user_id, fields, expected_revision))

    def create(self, record: UserRecord) -> UserRecord:
        return self._run(self._create_async(record))

    def delete(self, user_id: str) -> None:
        self._run(self._delete_async(user_id))

    def list_ids(self) -> list[str]:
        return self._run(self._list_ids_async())

    async def _call(
        self,
        method: str,
        url: str,
        *,
        user_id: str | None,
        params: list[tuple[str, str]] | None = None,
        json: object = None,
    ) -> httpx.Response:
        try:
            response = await self._shared_client().request(method, url, params=params, json=json)
        except httpx.TransportError as exc:
            raise StoreUnavailableError(
                f"Firestore {method} {url} failed: {exc}", user_id=user_id
            ) from exc
        _raise_for_status(response, user_id=user_id)
        return response

    async def _fetch_async(self, user_id: str) -> UserRecord:
        response = await self._call("GET", self._document_path(user_id), user_id=user_id)
        return _user_record(_validated(Document, response, user_id=user_id), user_id=user_id)

    async def _update_async(
        self,
        user_id: str,
        fields: Mapping[RelationshipField, Iterable[str]],
        expected_revision: str | None,
    ) -> str:
        params = [("updateMask.fieldPaths", name.value) for name in fields]
        if expected_revision is not None:
            params.append(("currentDocument.updateTime", expected_revision))
        else:
            params.append(("currentDocument.exists", "true"))
        body = {"fields": {name.value: encode_string_array(ids) for name, ids in fields.items()}}
        response = await self._call(
            "PATCH", self._document_path(user_id), user_id=user_id, params=params, json=body
        )
        document = _validated(Document, response, user_id=user_id)
        if document.update_time is None:
            raise DocumentStoreError("Firestore response lacks updateTime", user_id=user_id)
        return document.update_time

    async def _create_async(self, record: UserRecord) -> UserRecord:
        response = await self._call(
            "POST",
            self._collection_path(),
            user_id=record.user_id,
            params=[("documentId", record.user_id)],
            json={"fields": encode_user_record(record)},
        )
        document = _validated(Document, response, user_id=record.user_id)
        created = _user_record(document, user_id=record.user_id)
        log.debug("Created Firestore document %s", created.user_id)
        return created

    async def _delete_async(self, user_id: str) -> None:
        await self._call(
            "DELETE",
            self._document_path(user_id),
            user_id=user_id,
            params=[("currentDocument.exists", "true")],
        )

    async def _list_ids_async(self) -> list[str]:
        ids: list[str] = []
        page_token: str | None = None
        while True:
            params = [("pageSize", str(_PAGE_SIZE)), ("mask.fieldPaths", "userId")]
            if page_token:
                params.append(("pageToken", page_token))
            response = await self._call("GET", self._collection_path(), user_id=None, params=params)
            page = _validated(ListDocumentsResponse, response, user_id=None)
            ids.extend(document.document_id for document in page.documents)
            page_token = page.next_page_token
            if not page_token:
                break
        return sorted(ids)
