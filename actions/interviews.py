from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from actions.helpers import (
    INTERVIEW_MODES,
    INTERVIEW_STATUSES,
    EntityActions,
    is_blank,
    require_choice,
    validate_id_list,
)
from metadata_codec import PACKED_FIELDS, pack, split_packed_fields
from utils import ApiError, parse_datetime_maybe

# Fields the store may not echo back (packed into notes, or denormalized display data).
_REMERGE_FIELDS = ("mode", "interviewers", "candidateName", "jobTitle")


def _remerge(server: dict[str, Any], supplied: dict[str, Any], cached: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    out = dict(server)
    for key in _REMERGE_FIELDS:
        if not is_blank(out.get(key)):
            continue
        # A key the caller sent is authoritative, even when it clears the value.
        if key in supplied:
            out[key] = supplied[key]
        elif cached and not is_blank(cached.get(key)):
            out[key] = cached[key]
    return out


class InterviewActions(EntityActions):
    entity_type = "interviews"
    label_key = "candidateName"

    @property
    def _packs_notes(self) -> bool:
        return self.svc.cfg.INTERVIEW_METADATA_MODE == "notes"

    def _validate(self, data: dict[str, Any]) -> dict[str, Any]:
        if "status" in data:
            data["status"] = require_choice("status", data["status"], INTERVIEW_STATUSES)
        if not is_blank(data.get("mode")):
            data["mode"] = require_choice("mode", data["mode"], INTERVIEW_MODES)
        if "interviewers" in data:
            data["interviewers"] = validate_id_list("interviewers", data["interviewers"])
        if "duration" in data and data["duration"] is not None:
            try:
                data["duration"] = int(data["duration"])
            except (TypeError, ValueError):
                raise ApiError("BAD_REQUEST", "duration must be a number of minutes", details={"field": "duration"})
        return data

    def _fill_candidate_fields(self, data: dict[str, Any]) -> None:
        candidate_id = data.get("candidateId")
        if not candidate_id:
            return
        candidate = self.svc.candidates.get_by_id(candidate_id)
        if candidate is None:
            raise ApiError("BAD_REQUEST", f"Unknown candidateId: {candidate_id}", details={"field": "candidateId"})
        for field, source in (("candidateName", "name"), ("jobId", "jobId"), ("jobTitle", "jobTitle")):
            if is_blank(data.get(field)) and not is_blank(candidate.get(source)):
                data[field] = candidate[source]

    def _packed_payload(self, data: dict[str, Any], current: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        fields = PACKED_FIELDS[self.entity_type]
        touched = "notes" in data or any(f in data for f in fields)
        if not touched:
            return data
        rest, aux = split_packed_fields(self.entity_type, data)
        if current is not None:
            for f in fields:
                aux.setdefault(f, current.get(f))
        note = data["notes"] if "notes" in data else (current or {}).get("notes")
        rest["notes"] = pack(note, aux)
        return rest

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = self._validate(dict(data or {}))
        payload["status"] = require_choice("status", payload.get("status") or "scheduled", INTERVIEW_STATUSES)
        self._fill_candidate_fields(payload)

        outbound = self._packed_payload(payload) if self._packs_notes else payload
        outbound = {k: v for k, v in outbound.items() if k != "id"}
        created = _remerge(self.gateway.create(self.entity_type, outbound, acting_user_id), payload)
        self.state.prepend(self.entity_type, created)
        return created

    def update(self, interview_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        current = self.require(interview_id)
        patch = self._validate(dict(partial or {}))
        if "candidateId" in patch and patch["candidateId"] != current.get("candidateId"):
            self._fill_candidate_fields(patch)

        outbound = self._packed_payload(patch, current) if self._packs_notes else patch
        updated = _remerge(
            self.gateway.update(self.entity_type, interview_id, outbound, acting_user_id),
            patch,
            current,
        )
        self.state.put(self.entity_type, updated)
        return updated

    def get_by_candidate(self, candidate_id: str) -> list[dict[str, Any]]:
        return self._filter(lambda i: i.get("candidateId") == candidate_id)

    def get_by_interviewer(self, user_id: str) -> list[dict[str, Any]]:
        return self._filter(lambda i: user_id in (i.get("interviewers") or []))

    def get_upcoming(self, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        upcoming = []
        for interview in self._filter(lambda i: i.get("status") == "scheduled"):
            at = parse_datetime_maybe(interview.get("scheduledAt"))
            if at is not None and at > now:
                upcoming.append((at, interview))
        upcoming.sort(key=lambda pair: pair[0])
        return [interview for _, interview in upcoming]
