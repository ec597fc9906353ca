from __future__ import annotations

from typing import Any

from actions.helpers import OFFER_STATUSES, EntityActions, is_blank, require_choice
from utils import ApiError


class OfferActions(EntityActions):
    entity_type = "offers"
    label_key = "candidateName"

    def _fill_display_fields(self, data: dict[str, Any]) -> None:
        candidate_id = data.get("candidateId")
        if not candidate_id:
            return
        candidate = self.svc.candidates.get_by_id(candidate_id)
        if candidate is None:
            raise ApiError("BAD_REQUEST", f"Unknown candidateId: {candidate_id}", details={"field": "candidateId"})
        for field, source in (("candidateName", "name"), ("jobId", "jobId"), ("jobTitle", "jobTitle")):
            if is_blank(data.get(field)) and not is_blank(candidate.get(source)):
                data[field] = candidate[source]

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = dict(data or {})
        payload["status"] = require_choice("status", payload.get("status") or "draft", OFFER_STATUSES)
        self._fill_display_fields(payload)
        return self._create(payload, acting_user_id)

    def update(self, offer_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self.require(offer_id)
        patch = dict(partial or {})
        if "status" in patch:
            patch["status"] = require_choice("status", patch["status"], OFFER_STATUSES)
        return self._update(offer_id, patch, acting_user_id)

    def get_by_candidate(self, candidate_id: str) -> list[dict[str, Any]]:
        return self._filter(lambda o: o.get("candidateId") == candidate_id)
