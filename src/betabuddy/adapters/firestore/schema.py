"""Pydantic models for Firestore REST payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _FirestoreModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ArrayValue(_FirestoreModel):
    values: list[Value] = Field(default_factory=list)


class Value(_FirestoreModel):
    """A typed Firestore value; only the variants user documents use are modelled."""

    string_value: str | None = Field(default=None, alias="stringValue")
    array_value: ArrayValue | None = Field(default=None, alias="arrayValue")
    null_value: None = Field(default=None, alias="nullValue")

    def as_python(self) -> object:
        if self.array_value is not None:
            return [value.as_python() for value in self.array_value.values]
        return self.string_value


class Document(_FirestoreModel):
    name: str
    fields: dict[str, Value] = Field(default_factory=dict)
    create_time: str | None = Field(default=None, alias="createTime")
    update_time: str | None = Field(default=None, alias="updateTime")

    @property
    def document_id(self) -> str:
        return self.name.rsplit("/", 1)[-1]


class ListDocumentsResponse(_FirestoreModel):
    documents: list[Document] = Field(default_factory=list)
    next_page_token: str | None = Field(default=None, alias="nextPageToken")


class ErrorBody(_FirestoreModel):
    code: int
    message: str = ""
    status: str = ""


class ErrorResponse(_FirestoreModel):
    error: ErrorBody


ArrayValue.model_rebuild()
