"""Firestore REST adapter."""

from __future__ import annotations

from .client import FirestoreDocumentStore
from .schema import Document, ListDocumentsResponse, Value
from .translator import encode_string_array, encode_user_record, parse_user_document

__all__ = [
    "Document",
    "FirestoreDocumentStore",
    "ListDocumentsResponse",
    "Value",
    "encode_string_array",
    "encode_user_record",
    "parse_user_document",
]
