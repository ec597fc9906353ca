from __future__ import annotations

import logging
import time
from typing import Any, Optional

from actions.helpers import (
    CANDIDATE_STAGES,
    TERMINAL_INTERVIEW_STATUSES,
    EntityActions,
    is_blank,
    require_choice,
)
from utils import ApiError, ReferentialViolation, RemoteStoreError, iso_utc_now, sanitize_filename

log = logging.getLogger(__name__)

RESUME_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class CandidateActions(EntityActions):
    entity_type = "candidates"

    def _job_title(self, job_id: str) -> str:
        job = self.svc.jobs.get_by_id(job_id)
        if job is None:
            raise ApiError("BAD_REQUEST", f"Unknown jobId: {job_id}", details={"field": "jobId"})
        return str(job.get("title") or "")

    def _sync_counter(self, job_id: Optional[str], acting_user_id: Any) -> None:
        if not job_id:
            return
        try:
            self.svc.recompute_applicant_count(job_id, acting_user_id)
        except RemoteStoreError as e:
            # The candidate write already landed; the reconciliation sweep repairs the counter.
            log.warning("applicant counter for job %s left stale: %s", job_id, e.message)

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = dict(data or {})
        payload["stage"] = require_choice("stage", payload.get("stage") or "applied", CANDIDATE_STAGES)
        if is_blank(payload.get("appliedAt")):
            payload["appliedAt"] = iso_utc_now()

        job_id = payload.get("jobId")
        if job_id:
            title = self._job_title(job_id)
            if is_blank(payload.get("jobTitle")):
                payload["jobTitle"] = title

        created = self._create(payload, acting_user_id)
        self._sync_counter(job_id, acting_user_id)
        return created

    def update(self, candidate_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        current = self.require(candidate_id)
        patch = dict(partial or {})
        if "stage" in patch:
            patch["stage"] = require_choice("stage", patch["stage"], CANDIDATE_STAGES)

        old_job_id = current.get("jobId")
        new_job_id = patch.get("jobId", old_job_id)
        job_changed = "jobId" in patch and new_job_id != old_job_id
        if job_changed and new_job_id and is_blank(patch.get("jobTitle")):
            patch["jobTitle"] = self._job_title(new_job_id)

        updated = self._update(candidate_id, patch, acting_user_id)
        if job_changed:
            self._sync_counter(old_job_id, acting_user_id)
            self._sync_counter(new_job_id, acting_user_id)
        return updated

    def delete(self, candidate_id: str, acting_user_id: Any) -> None:
        current = self.require(candidate_id)

        interviews = self.gateway.list("interviews", {"candidateId": candidate_id})
        active = [i for i in interviews if i.get("status") not in TERMINAL_INTERVIEW_STATUSES]
        if active:
            raise ReferentialViolation(
                f"Cannot delete candidate. They have {len(active)} active interview(s). "
                "Please cancel or complete them first.",
                blockers=[str(i.get("id")) for i in active],
            )

        self._delete(candidate_id, acting_user_id, label=str(current.get("name") or ""))
        self._sync_counter(current.get("jobId"), acting_user_id)

    def move_to_stage(self, candidate_id: str, stage: str, acting_user_id: Any) -> dict[str, Any]:
        # Any stage may follow any other; ordering policy lives above this layer.
        return self.update(candidate_id, {"stage": stage}, acting_user_id)

    def get_by_job(self, job_id: str) -> list[dict[str, Any]]:
        return self._filter(lambda c: c.get("jobId") == job_id)

    def get_by_stage(self, stage: str) -> list[dict[str, Any]]:
        return self._filter(lambda c: c.get("stage") == stage)

    def upload_resume(
        self,
        candidate_id: str,
        *,
        filename: str,
        content_type: str,
        data: bytes,
        acting_user_id: Any,
    ) -> dict[str, Any]:
        self.require(candidate_id)
        cfg = self.svc.cfg

        ct = str(content_type or "").split(";", 1)[0].strip().lower()
        if ct not in RESUME_CONTENT_TYPES:
            raise ApiError("BAD_REQUEST", "Invalid file type. Please upload PDF, DOC, or DOCX.")
        size = len(data or b"")
        if size == 0:
            raise ApiError("BAD_REQUEST", "File is empty.")
        if size > cfg.RESUME_MAX_BYTES:
            max_mb = cfg.RESUME_MAX_BYTES / (1024 * 1024)
            raise ApiError("BAD_REQUEST", f"File is too large (max {max_mb:g}MB).", http_status=413)
        if self.svc.blob_store is None:
            raise ApiError("INTERNAL", "Blob storage is not configured", http_status=500)

        original_name = str(filename or "").strip() or "resume"
        path = f"candidates/{candidate_id}/{int(time.time() * 1000)}_{sanitize_filename(original_name)}"
        self.svc.blob_store.upload(cfg.RESUME_BUCKET, path, data, ct)
        public_url = self.svc.blob_store.get_public_url(cfg.RESUME_BUCKET, path)

        try:
            return self._update(
                candidate_id,
                {
                    "resumeUrl": public_url,
                    "resumeName": original_name,
                    "resumeSize": size,
                    "resumeUploadedAt": iso_utc_now(),
                },
                acting_user_id,
            )
        except RemoteStoreError:
            log.warning(
                "Resume stored but candidate %s not updated; orphaned object %s/%s", candidate_id, cfg.RESUME_BUCKET, path
            )
            raise
