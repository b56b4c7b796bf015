"""Translate between Firestore documents and user records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from betabuddy.adapters.documents import UserDocument

if TYPE_CHECKING:
    from collections.abc import Iterable

    from betabuddy.domain.model import UserRecord

    from .schema import Document

JsonValue = dict[str, object]


def encode_string(value: str) -> JsonValue:
    return {"stringValue": value}


def encode_string_array(values: Iterable[str]) -> JsonValue:
    ordered = sorted(set(values))
    if not ordered:
        return {"arrayValue": {}}
    return {"arrayValue": {"values": [encode_string(value) for value in ordered]}}


def parse_user_document(document: Document) -> UserRecord:
    payload = {name: value.as_python() for name, value in document.fields.items()}
    payload.setdefault("userId", document.document_id)
    return UserDocument.model_validate(payload).to_record(revision=document.update_time)


def encode_user_record(record: UserRecord) -> dict[str, JsonValue]:
    document = UserDocument.from_record(record).model_dump(by_alias=True)
    return {
        name: encode_string_array(value) if isinstance(value, list) else encode_string(value)
        for name, value in document.items()
    }
