from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Optional

from actions.analytics_actions import analytics_snapshot
from actions.candidates import CandidateActions
from actions.feedback import FeedbackActions
from actions.interviews import InterviewActions
from actions.jobs import JobActions
from actions.offers import OfferActions
from actions.state import DataState
from actions.users import UserActions
from audit import AuditRecorder
from config import Config
from gateway import ENTITY_TYPES, EntityStoreGateway

log = logging.getLogger(__name__)

SYSTEM_USER = "system"


class HiringService:
    """
    Domain operations over the cached collections.

    Writes go through the gateway first; the cache only changes once the store
    has acknowledged the write, so a failed call leaves it untouched.
    """

    def __init__(self, gateway: EntityStoreGateway, *, blob_store=None, cfg: Config | None = None):
        self.gateway = gateway
        self.blob_store = blob_store
        self.cfg = cfg or Config()
        self.state = DataState(ENTITY_TYPES)

        self.users = UserActions(self)
        self.jobs = JobActions(self)
        self.candidates = CandidateActions(self)
        self.interviews = InterviewActions(self)
        self.feedback = FeedbackActions(self)
        self.offers = OfferActions(self)

    @classmethod
    def from_store(cls, store, *, blob_store=None, cfg: Config | None = None) -> "HiringService":
        return cls(EntityStoreGateway(store, AuditRecorder(store)), blob_store=blob_store, cfg=cfg)

    def group(self, entity_type: str):
        groups = {
            "users": self.users,
            "jobs": self.jobs,
            "candidates": self.candidates,
            "interviews": self.interviews,
            "feedback": self.feedback,
            "offers": self.offers,
        }
        return groups[entity_type]

    def refresh(self) -> dict[str, int]:
        collections = {t: self.gateway.list(t) for t in ENTITY_TYPES}
        self.state.load(collections)
        counts = {t: len(items) for t, items in collections.items()}
        log.info("collections loaded %s", counts)
        return counts

    def ensure_loaded(self) -> None:
        max_age = float(self.cfg.STATE_MAX_AGE_SECONDS or 0)
        if self.state.loaded and (max_age <= 0 or self.state.age_seconds() < max_age):
            return
        self.refresh()

    def _write_count(self, job: dict[str, Any], count: int, acting_user_id: Any) -> bool:
        if int(job.get("applicants") or 0) == count:
            return False
        updated = self.gateway.update("jobs", job["id"], {"applicants": count}, acting_user_id or SYSTEM_USER)
        self.state.put("jobs", updated)
        return True

    def recompute_applicant_count(self, job_id: str, acting_user_id: Any = None) -> Optional[int]:
        """Re-derive one job's applicant counter from the store. Safe to repeat; None if the job is gone."""
        job = self.gateway.get("jobs", job_id)
        if job is None:
            log.info("applicant recount skipped, job %s not found", job_id)
            return None
        count = len(self.gateway.list("candidates", {"jobId": job_id}))
        self._write_count(job, count, acting_user_id)
        return count

    def reconcile_applicant_counts(self, acting_user_id: Any = None) -> dict[str, int]:
        """Sweep every job's counter back in line with the store; returns the counters that changed."""
        per_job = Counter(c.get("jobId") for c in self.gateway.list("candidates") if c.get("jobId"))
        changed: dict[str, int] = {}
        for job in self.gateway.list("jobs"):
            count = int(per_job.get(job["id"], 0))
            if self._write_count(job, count, acting_user_id):
                changed[job["id"]] = count
        if changed:
            log.warning("applicant counters repaired %s", changed)
        return changed

    def get_analytics_snapshot(self, now: Optional[datetime] = None) -> dict[str, Any]:
        self.ensure_loaded()
        return analytics_snapshot(
            self.state.all("jobs"),
            self.state.all("candidates"),
            self.state.all("interviews"),
            self.state.all("offers"),
            now=now,
        )

    def get_aggregate_feedback(self, candidate_id: str) -> Optional[dict[str, Any]]:
        return self.feedback.get_aggregate_feedback(candidate_id)

    def get_audit_log(self, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        f = filters or {}
        return self.gateway.recorder.query(
            entity=f.get("entity") or f.get("entityType"),
            entity_id=f.get("entityId"),
            user_id=f.get("userId") or f.get("actingUserId"),
            action=f.get("action"),
        )

    def record_login(self, user_id: str) -> Optional[dict[str, Any]]:
        return self.gateway.recorder.record_login(user_id)
