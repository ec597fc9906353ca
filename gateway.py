from __future__ import annotations

from typing import Any, Optional

from audit import AuditRecorder
from metadata_codec import decode_notes_fields
from transcoder import to_domain_shape, to_store_shape
from utils import ApiError

ENTITY_TYPES = ("users", "jobs", "candidates", "interviews", "feedback", "offers")

# Assigned by the store; never forwarded from callers.
_STORE_ASSIGNED = ("id", "created_at", "updated_at")


def _summary(*sources: Optional[dict[str, Any]], fallback: Any = "") -> str:
    for src in sources:
        if not src:
            continue
        for key in ("title", "name"):
            value = str(src.get(key) or "").strip()
            if value:
                return value
    return str(fallback or "item")


class EntityStoreGateway:
    """
    Generic CRUD façade over the table store. Payloads go in and come out in
    domain shape; transcoding, notes decoding and audit recording happen here.

    A failed remote call propagates as RemoteStoreError before anything is
    audited. A failed audit write is contained by the recorder.
    """

    def __init__(self, store, recorder: AuditRecorder):
        self.store = store
        self.recorder = recorder

    @staticmethod
    def _check(entity_type: str) -> str:
        if entity_type not in ENTITY_TYPES:
            raise ApiError("BAD_REQUEST", f"Unknown entity type: {entity_type}")
        return entity_type

    @staticmethod
    def _to_domain(entity_type: str, row: dict[str, Any]) -> dict[str, Any]:
        return decode_notes_fields(entity_type, to_domain_shape(entity_type, row))

    @staticmethod
    def _to_store(entity_type: str, obj: dict[str, Any]) -> dict[str, Any]:
        payload = to_store_shape(entity_type, obj or {})
        for key in _STORE_ASSIGNED:
            payload.pop(key, None)
        return payload

    def list(self, entity_type: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self._check(entity_type)
        store_filters = to_store_shape(entity_type, filters or {})
        rows = self.store.select(entity_type, store_filters)
        return [self._to_domain(entity_type, r) for r in rows]

    def get(self, entity_type: str, entity_id: str) -> Optional[dict[str, Any]]:
        self._check(entity_type)
        rows = self.store.select(entity_type, {"id": entity_id})
        return self._to_domain(entity_type, rows[0]) if rows else None

    def create(self, entity_type: str, obj: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self._check(entity_type)
        row = self.store.insert(entity_type, self._to_store(entity_type, obj))
        created = self._to_domain(entity_type, row)

        self.recorder.record(
            "CREATE",
            entity_type,
            created.get("id"),
            acting_user_id,
            f"Created {entity_type}: {_summary(obj, created, fallback=created.get('id'))}",
        )
        return created

    def update(self, entity_type: str, entity_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self._check(entity_type)
        row = self.store.update(entity_type, entity_id, self._to_store(entity_type, partial))
        updated = self._to_domain(entity_type, row)

        self.recorder.record(
            "UPDATE",
            entity_type,
            entity_id,
            acting_user_id,
            f"Updated {entity_type}: {_summary(partial, updated, fallback=entity_id)}",
            changes=partial,
        )
        return updated

    def delete(self, entity_type: str, entity_id: str, acting_user_id: Any, *, label: str = "") -> None:
        self._check(entity_type)
        self.store.delete(entity_type, entity_id)

        what = f"{label} ({entity_id})" if label else entity_id
        self.recorder.record("DELETE", entity_type, entity_id, acting_user_id, f"Deleted {entity_type} item {what}")
