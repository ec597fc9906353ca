"""
Dashboard analytics for the hiring pipeline.

Everything here is a pure function of the cached collections and is recomputed
on every call; nothing is stored.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from actions.helpers import CANDIDATE_STAGES, INTERVIEW_STATUSES, JOB_STATUSES, OFFER_STATUSES
from utils import parse_datetime_maybe

RECENT_WINDOW = timedelta(days=30)


def _by_key(items: Iterable[dict[str, Any]], key: str, known: Iterable[str]) -> dict[str, int]:
    counts = Counter(str(x.get(key) or "") for x in items)
    out = {k: int(counts.get(k, 0)) for k in known}
    for k, n in counts.items():
        if k and k not in out:
            out[k] = int(n)
    return out


def analytics_snapshot(
    jobs: list[dict[str, Any]],
    candidates: list[dict[str, Any]],
    interviews: list[dict[str, Any]],
    offers: list[dict[str, Any]],
    *,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    recent_cutoff = now - RECENT_WINDOW

    jobs_by_status = _by_key(jobs, "status", JOB_STATUSES)
    interviews_by_status = _by_key(interviews, "status", INTERVIEW_STATUSES)
    offers_by_status = _by_key(offers, "status", OFFER_STATUSES)

    upcoming = 0
    for i in interviews:
        if i.get("status") != "scheduled":
            continue
        at = parse_datetime_maybe(i.get("scheduledAt"))
        if at is not None and at > now:
            upcoming += 1

    recent = 0
    for c in candidates:
        applied = parse_datetime_maybe(c.get("appliedAt") or c.get("createdAt"))
        if applied is not None and applied > recent_cutoff:
            recent += 1

    return {
        "totalJobs": len(jobs),
        "activeJobs": jobs_by_status.get("published", 0),
        "jobsByStatus": jobs_by_status,
        "totalCandidates": len(candidates),
        "candidatesByStage": {s: sum(1 for c in candidates if c.get("stage") == s) for s in CANDIDATE_STAGES},
        "upcomingInterviews": upcoming,
        "completedInterviews": interviews_by_status.get("completed", 0),
        "interviewsByStatus": interviews_by_status,
        "pendingOffers": offers_by_status.get("sent", 0),
        "acceptedOffers": offers_by_status.get("accepted", 0),
        "offersByStatus": offers_by_status,
        "recentCandidates": recent,
    }
