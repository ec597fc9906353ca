from __future__ import annotations

import logging
from typing import Any, Optional

from transcoder import to_domain_shape, to_store_shape
from utils import AuditWriteFailure, RemoteStoreError, redact_for_audit

log = logging.getLogger(__name__)

AUDIT_TABLE = "audit_log"
AUDIT_ACTIONS = ("CREATE", "UPDATE", "DELETE", "LOGIN")


class AuditRecorder:
    """
    Append-only audit trail. Writes complete before `record` returns, but a failed
    write never fails the operation that triggered it: it is logged at WARNING and
    `record` returns None. Entries are never updated or deleted from here.
    """

    def __init__(self, store):
        self._store = store

    def _write(self, entry: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._store.insert(AUDIT_TABLE, to_store_shape(AUDIT_TABLE, entry))
        except RemoteStoreError as e:
            raise AuditWriteFailure(
                f"audit {entry['action']} {entry['entity']}:{entry['entityId']} not written: {e.message}"
            ) from e

    def record(
        self,
        action: str,
        entity: str,
        entity_id: Any,
        user_id: Any,
        details: str,
        changes: Any = None,
    ) -> Optional[dict[str, Any]]:
        entry = {
            "action": str(action or "").upper(),
            "entity": str(entity or ""),
            "entityId": str(entity_id or ""),
            "userId": str(user_id or ""),
            "details": str(details or ""),
            "changes": redact_for_audit(changes) if changes is not None else None,
        }
        try:
            row = self._write(entry)
        except AuditWriteFailure as e:
            log.warning("%s", e)
            return None
        return to_domain_shape(AUDIT_TABLE, row)

    def record_login(self, user_id: str) -> Optional[dict[str, Any]]:
        return self.record("LOGIN", "users", user_id, user_id, "User logged in")

    def query(
        self,
        *,
        entity: str | None = None,
        entity_id: str | None = None,
        user_id: str | None = None,
        action: str | None = None,
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {}
        if entity:
            filters["entity_type"] = entity
        if entity_id:
            filters["entity_id"] = entity_id
        if user_id:
            filters["user_id"] = user_id
        if action:
            filters["action"] = str(action).upper()

        rows = self._store.select(AUDIT_TABLE, filters, order_by="timestamp", descending=True)
        return [to_domain_shape(AUDIT_TABLE, r) for r in rows]
