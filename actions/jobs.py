from __future__ import annotations

from typing import Any

from actions.helpers import JOB_STATUSES, EntityActions, require_choice


class JobActions(EntityActions):
    entity_type = "jobs"
    label_key = "title"

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = dict(data or {})
        payload["status"] = require_choice("status", payload.get("status") or "draft", JOB_STATUSES)
        # The counter is owned by recompute_applicant_count; new jobs start empty.
        payload["applicants"] = 0
        payload.setdefault("createdBy", str(acting_user_id or ""))
        return self._create(payload, acting_user_id)

    def update(self, job_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self.require(job_id)
        patch = dict(partial or {})
        if "status" in patch:
            patch["status"] = require_choice("status", patch["status"], JOB_STATUSES)
        return self._update(job_id, patch, acting_user_id)

    def publish(self, job_id: str, acting_user_id: Any) -> dict[str, Any]:
        return self.update(job_id, {"status": "published"}, acting_user_id)

    def archive(self, job_id: str, acting_user_id: Any) -> dict[str, Any]:
        return self.update(job_id, {"status": "archived"}, acting_user_id)

    def get_by_status(self, status: str) -> list[dict[str, Any]]:
        return self._filter(lambda j: j.get("status") == status)
