from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Iterable, Optional

from utils import ApiError

if TYPE_CHECKING:
    from actions import HiringService

USER_ROLES = ("admin", "hr", "interviewer")
JOB_STATUSES = ("draft", "published", "archived")
OPEN_JOB_STATUSES = ("draft", "published")
CANDIDATE_STAGES = ("applied", "shortlisted", "interview", "offer", "hired", "rejected")
INTERVIEW_STATUSES = ("scheduled", "completed", "cancelled")
TERMINAL_INTERVIEW_STATUSES = ("completed", "cancelled")
INTERVIEW_MODES = ("online", "offline")
RECOMMENDATIONS = ("hire", "hold", "reject")
OFFER_STATUSES = ("draft", "sent", "accepted", "rejected", "expired")

RATING_CRITERIA = ("technical", "communication", "problemSolving", "cultureFit", "leadership")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_choice(field: str, value: Any, choices: Iterable[str]) -> str:
    v = str(value or "").strip().lower()
    choices = tuple(choices)
    if v not in choices:
        raise ApiError("BAD_REQUEST", f"{field} must be one of {'|'.join(choices)}", details={"field": field})
    return v


def validate_email(value: Any) -> str:
    email = str(value or "").strip().lower()
    if not email or not _EMAIL_RE.match(email):
        raise ApiError("BAD_REQUEST", "Invalid email", details={"field": "email"})
    return email


def validate_ratings(value: Any) -> dict[str, int]:
    if not isinstance(value, dict):
        raise ApiError("BAD_REQUEST", "ratings must be an object of criterion -> 1..5", details={"field": "ratings"})
    out: dict[str, int] = {}
    for key, rating in value.items():
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ApiError("BAD_REQUEST", f"Rating for {key} must be an integer 1-5", details={"field": f"ratings.{key}"})
        out[str(key)] = rating
    return out


def validate_id_list(field: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ApiError("BAD_REQUEST", f"{field} must be a list", details={"field": field})
    return [str(v) for v in value if str(v or "").strip()]


def is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


class EntityActions:
    """Shared list/get/create/update/delete for one entity type, keeping the cache in step with the store."""

    entity_type = ""
    label_key = "name"

    def __init__(self, svc: "HiringService"):
        self.svc = svc

    @property
    def gateway(self):
        return self.svc.gateway

    @property
    def state(self):
        return self.svc.state

    def list(self) -> list[dict[str, Any]]:
        self.svc.ensure_loaded()
        return self.state.all(self.entity_type)

    def get_by_id(self, entity_id: str) -> Optional[dict[str, Any]]:
        self.svc.ensure_loaded()
        cached = self.state.find(self.entity_type, entity_id)
        if cached is not None:
            return cached
        fetched = self.gateway.get(self.entity_type, entity_id)
        if fetched is not None:
            self.state.put(self.entity_type, fetched)
        return fetched

    def require(self, entity_id: str) -> dict[str, Any]:
        found = self.get_by_id(entity_id) if entity_id else None
        if found is None:
            raise ApiError("NOT_FOUND", f"{self.entity_type} {entity_id} not found", http_status=404)
        return found

    def _filter(self, predicate) -> list[dict[str, Any]]:
        self.svc.ensure_loaded()
        return self.state.filter(self.entity_type, predicate)

    def _create(self, payload: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = {k: v for k, v in payload.items() if k != "id"}
        created = self.gateway.create(self.entity_type, payload, acting_user_id)
        self.state.prepend(self.entity_type, created)
        return created

    def _update(self, entity_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        updated = self.gateway.update(self.entity_type, entity_id, partial, acting_user_id)
        self.state.put(self.entity_type, updated)
        return updated

    def _delete(self, entity_id: str, acting_user_id: Any, *, label: str = "") -> None:
        self.gateway.delete(self.entity_type, entity_id, acting_user_id, label=label)
        self.state.remove(self.entity_type, entity_id)

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        return self._create(dict(data or {}), acting_user_id)

    def update(self, entity_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self.require(entity_id)
        return self._update(entity_id, dict(partial or {}), acting_user_id)

    def delete(self, entity_id: str, acting_user_id: Any) -> None:
        current = self.require(entity_id)
        self._delete(entity_id, acting_user_id, label=str(current.get(self.label_key) or ""))
