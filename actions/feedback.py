from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from actions.helpers import (
    RATING_CRITERIA,
    RECOMMENDATIONS,
    EntityActions,
    is_blank,
    require_choice,
    validate_ratings,
)
from utils import ApiError

_ONE_DECIMAL = Decimal("0.1")


def _round_half_up(value: Decimal) -> float:
    return float(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def aggregate_feedback(records: Iterable[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Combine the feedback for one candidate.

    Each criterion is averaged over the raters that actually rated it and rounded
    half up to one decimal. Ties in the vote favour hire, then hold. Returns None
    when there is no feedback at all.
    """
    records = list(records or [])
    if not records:
        return None

    sums: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    votes = {r: 0 for r in RECOMMENDATIONS}

    for fb in records:
        for criterion, rating in (fb.get("ratings") or {}).items():
            if isinstance(rating, bool) or not isinstance(rating, (int, float)):
                continue
            sums[criterion] = sums.get(criterion, Decimal(0)) + Decimal(str(rating))
            counts[criterion] = counts.get(criterion, 0) + 1
        rec = fb.get("recommendation")
        if rec in votes:
            votes[rec] += 1

    hire, hold, reject = votes["hire"], votes["hold"], votes["reject"]
    if hire >= hold and hire >= reject:
        overall = "hire"
    elif hold >= reject:
        overall = "hold"
    else:
        overall = "reject"

    # Known criteria first, in form order; anything else after, alphabetically.
    order = [c for c in RATING_CRITERIA if c in sums] + sorted(c for c in sums if c not in RATING_CRITERIA)
    return {
        "averageRatings": {c: _round_half_up(sums[c] / counts[c]) for c in order},
        "totalFeedback": len(records),
        "recommendations": votes,
        "overallRecommendation": overall,
    }


class FeedbackActions(EntityActions):
    entity_type = "feedback"
    label_key = "candidateName"

    def _validate(self, data: dict[str, Any]) -> dict[str, Any]:
        if "ratings" in data:
            data["ratings"] = validate_ratings(data["ratings"])
        if "recommendation" in data:
            data["recommendation"] = require_choice("recommendation", data["recommendation"], RECOMMENDATIONS)
        return data

    def _fill_display_fields(self, data: dict[str, Any]) -> None:
        interview_id = data.get("interviewId")
        if interview_id:
            interview = self.svc.interviews.get_by_id(interview_id)
            if interview is None:
                raise ApiError("BAD_REQUEST", f"Unknown interviewId: {interview_id}", details={"field": "interviewId"})
            for field in ("candidateId", "candidateName", "jobId", "jobTitle"):
                if is_blank(data.get(field)) and not is_blank(interview.get(field)):
                    data[field] = interview[field]

        candidate_id = data.get("candidateId")
        if candidate_id and is_blank(data.get("candidateName")):
            candidate = self.svc.candidates.get_by_id(candidate_id)
            if candidate is not None:
                data["candidateName"] = candidate.get("name") or ""
                data.setdefault("jobId", candidate.get("jobId"))
                data.setdefault("jobTitle", candidate.get("jobTitle"))

        interviewer_id = data.get("interviewerId")
        if interviewer_id and is_blank(data.get("interviewerName")):
            user = self.svc.users.get_by_id(interviewer_id)
            if user is not None:
                data["interviewerName"] = user.get("name") or ""

    def create(self, data: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        payload = dict(data or {})
        payload.setdefault("ratings", {})
        if is_blank(payload.get("recommendation")):
            raise ApiError("BAD_REQUEST", "recommendation is required", details={"field": "recommendation"})
        payload = self._validate(payload)
        if is_blank(payload.get("interviewerId")) and acting_user_id:
            payload["interviewerId"] = str(acting_user_id)
        self._fill_display_fields(payload)
        return self._create(payload, acting_user_id)

    def update(self, feedback_id: str, partial: dict[str, Any], acting_user_id: Any) -> dict[str, Any]:
        self.require(feedback_id)
        return self._update(feedback_id, self._validate(dict(partial or {})), acting_user_id)

    def get_by_candidate(self, candidate_id: str) -> list[dict[str, Any]]:
        return self._filter(lambda f: f.get("candidateId") == candidate_id)

    def get_by_interview(self, interview_id: str) -> list[dict[str, Any]]:
        return self._filter(lambda f: f.get("interviewId") == interview_id)

    def get_aggregate_feedback(self, candidate_id: str) -> Optional[dict[str, Any]]:
        return aggregate_feedback(self.get_by_candidate(candidate_id))
