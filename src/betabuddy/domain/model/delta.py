"""Idempotent per-document changes to relationship fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from betabuddy.domain.model.enums import RelationshipField

if TYPE_CHECKING:
    from betabuddy.domain.model.user import UserRecord


@dataclass(frozen=True, slots=True)
class FieldChange:
    """Ensure ``value`` is present in (or absent from) ``field``."""

    field: RelationshipField
    value: str
    present: bool


@dataclass(frozen=True, slots=True)
class RecordDelta:
    """Changes to one user document.

    A delta never carries whole field values. It is re-applied to whatever
    snapshot is current at write time, so applying it twice, or to a record that
    already reflects it, is a no-op.
    """

    user_id: str
    changes: tuple[FieldChange, ...]

    @classmethod
    def of(
        cls,
        user_id: str,
        *,
        add: tuple[tuple[RelationshipField, str], ...] = (),
        remove: tuple[tuple[RelationshipField, str], ...] = (),
    ) -> RecordDelta:
        changes = tuple(FieldChange(name, value, present=False) for name, value in remove)
        changes += tuple(FieldChange(name, value, present=True) for name, value in add)
        return cls(user_id=user_id, changes=changes)

    def apply_to(self, record: UserRecord) -> dict[RelationshipField, frozenset[str]]:
        """Return only the fields of ``record`` that this delta would change."""

        if record.user_id != self.user_id:
            raise ValueError(f"Delta for {self.user_id!r} applied to record {record.user_id!r}")
        current = record.relationship_fields()
        updated = {name: set(values) for name, values in current.items()}
        for change in self.changes:
            if change.present:
                updated[change.field].add(change.value)
            else:
                updated[change.field].discard(change.value)
        return {
            name: frozenset(values)
            for name, values in updated.items()
            if frozenset(values) != current[name]
        }

    def is_satisfied_by(self, record: UserRecord) -> bool:
        return not self.apply_to(record)

    @property
    def is_empty(self) -> bool:
        return not self.changes
