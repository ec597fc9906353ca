from __future__ import annotations

from typing import Any

from actions.helpers import (
    OPEN_JOB_STATUSES,
    TERMINAL_INTERVIEW_STATUSES,
    USER_ROLES,
    EntityActions,
    require_choice,
    validate_email,
)
from utils import ApiError, ReferentialViolation


class UserActions(EntityActions):
    entity_type = "users"

    def _validate(self, data: dict[str, Any]) -> dict[str, Any]:
        if "role" in data:
            data["role"] = require_choice("role", data["role"], USER_ROLES)
        if "email" in data:
            data["email"] = validate_email(data["email"])
        if "name" in data:
            data["name"] = str(data["name"] or "").strip()
            if not data["name"]:
                raise ApiError("BAD_REQUEST", "name is required", details={"field": "name"})
        return data

    def _email_taken(self, email: str, *, exclude_id: str = "") -> bool:
        return any(u.get("id") != exclude_id for u in self.gateway.list("users", {"email": email}))

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = dict(data or {})
        payload.setdefault("role", "interviewer")
        payload.setdefault("name", "")
        if "email" not in payload:
            raise ApiError("BAD_REQUEST", "email is required", details={"field": "email"})
        payload = self._validate(payload)
        if self._email_taken(payload["email"]):
            raise ApiError("CONFLICT", "A user with this email already exists", http_status=409)
        return self._create(payload, acting_user_id)

    def update(self, user_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self.require(user_id)
        patch = self._validate(dict(partial or {}))
        if "email" in patch and self._email_taken(patch["email"], exclude_id=user_id):
            raise ApiError("CONFLICT", "A user with this email already exists", http_status=409)
        return self._update(user_id, patch, acting_user_id)

    def delete(self, user_id: str, acting_user_id: Any) -> None:
        current = self.require(user_id)

        if str(user_id) == str(acting_user_id or ""):
            raise ReferentialViolation("You can't delete your own account", blockers=[str(user_id)])

        open_jobs = [
            j for j in self.gateway.list("jobs", {"createdBy": user_id}) if j.get("status") in OPEN_JOB_STATUSES
        ]
        if open_jobs:
            raise ReferentialViolation(
                f"Cannot delete user. They have created {len(open_jobs)} active jobs.",
                blockers=[str(j.get("id")) for j in open_jobs],
            )

        # Membership in a JSON list column can't be filtered portably, so scan in memory.
        pending = [
            i
            for i in self.gateway.list("interviews")
            if i.get("status") not in TERMINAL_INTERVIEW_STATUSES and user_id in (i.get("interviewers") or [])
        ]
        if pending:
            raise ReferentialViolation(
                f"Cannot delete user. They are assigned to {len(pending)} upcoming interviews.",
                blockers=[str(i.get("id")) for i in pending],
            )

        self._delete(user_id, acting_user_id, label=str(current.get("name") or ""))
