from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from utils import ApiError, ReferentialViolation, RemoteStoreError

ADMIN = "u-admin"


class JobsUpdateDownStore:
    """Delegates to a real store; job updates fail while `down` is set."""

    def __init__(self, inner):
        self.inner = inner
        self.down = True

    def select(self, *args, **kwargs):
        return self.inner.select(*args, **kwargs)

    def insert(self, table, row):
        return self.inner.insert(table, row)

    def update(self, table, row_id, partial):
        if self.down and table == "jobs":
            raise RemoteStoreError("jobs table unavailable")
        return self.inner.update(table, row_id, partial)

    def delete(self, table, row_id):
        return self.inner.delete(table, row_id)


def _job(service, title="Backend Engineer", **extra):
    return service.jobs.create({"title": title, "department": "Engineering", **extra}, ADMIN)


def _candidate(service, job_id=None, name="Ada Lovelace"):
    data = {"name": name, "email": f"{name.split()[0].lower()}@example.com"}
    if job_id:
        data["jobId"] = job_id
    return service.candidates.create(data, ADMIN)


def _applicants(service, job_id):
    return service.jobs.get_by_id(job_id)["applicants"]


def test_end_to_end_hiring_flow(service):
    job = _job(service)
    assert job["status"] == "draft"
    assert job["applicants"] == 0
    assert job["createdBy"] == ADMIN

    assert service.jobs.publish(job["id"], ADMIN)["status"] == "published"

    cand = _candidate(service, job["id"])
    assert cand["stage"] == "applied"
    assert cand["jobTitle"] == "Backend Engineer"
    assert cand["appliedAt"]
    assert _applicants(service, job["id"]) == 1

    service.feedback.create(
        {"candidateId": cand["id"], "ratings": {"technical": 4, "communication": 4}, "recommendation": "hire"},
        "u-1",
    )
    service.feedback.create(
        {"candidateId": cand["id"], "ratings": {"technical": 3, "communication": 3}, "recommendation": "hold"},
        "u-2",
    )

    agg = service.get_aggregate_feedback(cand["id"])
    assert agg["averageRatings"] == {"technical": 3.5, "communication": 3.5}
    assert agg["overallRecommendation"] == "hire"
    assert agg["totalFeedback"] == 2

    service.candidates.delete(cand["id"], ADMIN)
    assert _applicants(service, job["id"]) == 0
    assert service.candidates.get_by_id(cand["id"]) is None


def test_counter_symmetry(service):
    job = _job(service)
    _candidate(service, job["id"], "Grace Hopper")
    _candidate(service, job["id"], "Alan Turing")
    before = _applicants(service, job["id"])

    extra = _candidate(service, job["id"], "Edsger Dijkstra")
    service.candidates.delete(extra["id"], ADMIN)

    assert _applicants(service, job["id"]) == before == 2


def test_moving_candidate_between_jobs_updates_both_counters(service):
    a = _job(service, "A")
    b = _job(service, "B")
    cand = _candidate(service, a["id"])

    moved = service.candidates.update(cand["id"], {"jobId": b["id"]}, ADMIN)
    assert moved["jobTitle"] == "B"
    assert _applicants(service, a["id"]) == 0
    assert _applicants(service, b["id"]) == 1


def test_recompute_is_idempotent(service):
    job = _job(service)
    _candidate(service, job["id"])
    assert service.recompute_applicant_count(job["id"]) == 1
    assert service.recompute_applicant_count(job["id"]) == 1

    updates = [e for e in service.get_audit_log({"entity": "jobs", "entityId": job["id"]}) if e["action"] == "UPDATE"]
    assert len(updates) == 1


def test_stale_counter_is_repaired_by_sweep(store, service, caplog):
    from actions import HiringService

    flaky = JobsUpdateDownStore(store)
    svc = HiringService.from_store(flaky, cfg=service.cfg)
    job = svc.jobs.create({"title": "Ops"}, ADMIN)

    with caplog.at_level(logging.WARNING, logger="actions.candidates"):
        cand = svc.candidates.create({"name": "Linus", "jobId": job["id"]}, ADMIN)
    assert cand["id"]
    assert svc.jobs.get_by_id(job["id"])["applicants"] == 0
    assert any("left stale" in r.getMessage() for r in caplog.records)

    flaky.down = False
    assert svc.reconcile_applicant_counts(ADMIN) == {job["id"]: 1}
    assert svc.reconcile_applicant_counts(ADMIN) == {}
    assert svc.jobs.get_by_id(job["id"])["applicants"] == 1


def test_unknown_job_is_rejected_on_candidate_create(service):
    with pytest.raises(ApiError) as exc:
        _candidate(service, "no-such-job")
    assert exc.value.code == "BAD_REQUEST"


def test_move_to_stage_is_unconditional_but_validated(service):
    cand = _candidate(service)
    assert service.candidates.move_to_stage(cand["id"], "hired", ADMIN)["stage"] == "hired"
    assert service.candidates.move_to_stage(cand["id"], "applied", ADMIN)["stage"] == "applied"
    assert [c["id"] for c in service.candidates.get_by_stage("applied")] == [cand["id"]]

    with pytest.raises(ApiError) as exc:
        service.candidates.move_to_stage(cand["id"], "onboarding", ADMIN)
    assert exc.value.code == "BAD_REQUEST"


def test_candidate_with_active_interview_cannot_be_deleted(service):
    job = _job(service)
    cand = _candidate(service, job["id"])
    interview = service.interviews.create({"candidateId": cand["id"], "scheduledAt": "2030-01-01T10:00:00Z"}, ADMIN)

    with pytest.raises(ReferentialViolation) as exc:
        service.candidates.delete(cand["id"], ADMIN)
    assert "1 active interview(s)" in exc.value.message
    assert exc.value.details["blockers"] == [interview["id"]]
    assert exc.value.http_status == 409
    assert _applicants(service, job["id"]) == 1

    service.interviews.update(interview["id"], {"status": "completed"}, ADMIN)
    service.candidates.delete(cand["id"], ADMIN)
    assert _applicants(service, job["id"]) == 0


def test_user_deletion_guards(service):
    hr = service.users.create({"name": "Hana", "email": "hana@example.com", "role": "hr"}, ADMIN)
    interviewer = service.users.create({"name": "Ivan", "email": "ivan@example.com", "role": "interviewer"}, ADMIN)

    with pytest.raises(ReferentialViolation) as exc:
        service.users.delete(hr["id"], hr["id"])
    assert exc.value.message == "You can't delete your own account"

    job = service.jobs.create({"title": "Designer"}, hr["id"])
    with pytest.raises(ReferentialViolation) as exc:
        service.users.delete(hr["id"], ADMIN)
    assert exc.value.message == "Cannot delete user. They have created 1 active jobs."
    service.jobs.archive(job["id"], ADMIN)
    service.users.delete(hr["id"], ADMIN)

    interview = service.interviews.create(
        {"interviewers": [interviewer["id"]], "scheduledAt": "2030-01-01T10:00:00Z"}, ADMIN
    )
    with pytest.raises(ReferentialViolation) as exc:
        service.users.delete(interviewer["id"], ADMIN)
    assert exc.value.message == "Cannot delete user. They are assigned to 1 upcoming interviews."
    service.interviews.update(interview["id"], {"status": "cancelled"}, ADMIN)
    service.users.delete(interviewer["id"], ADMIN)

    assert service.users.list() == []


def test_user_validation(service):
    with pytest.raises(ApiError):
        service.users.create({"name": "X", "email": "x@example.com", "role": "owner"}, ADMIN)
    with pytest.raises(ApiError):
        service.users.create({"name": "X", "email": "not-an-email"}, ADMIN)

    service.users.create({"name": "X", "email": "X@Example.com"}, ADMIN)
    with pytest.raises(ApiError) as exc:
        service.users.create({"name": "Y", "email": "x@example.com"}, ADMIN)
    assert exc.value.code == "CONFLICT"


def test_interview_create_fills_candidate_fields(service):
    job = _job(service)
    cand = _candidate(service, job["id"])
    interview = service.interviews.create(
        {
            "candidateId": cand["id"],
            "panelType": "technical",
            "scheduledAt": "2030-01-01T15:30:00+05:30",
            "mode": "online",
            "interviewers": ["u-1"],
            "duration": "45",
        },
        ADMIN,
    )
    assert interview["candidateName"] == "Ada Lovelace"
    assert interview["jobId"] == job["id"]
    assert interview["jobTitle"] == "Backend Engineer"
    assert interview["status"] == "scheduled"
    assert interview["scheduledAt"] == "2030-01-01T10:00:00.000Z"
    assert interview["duration"] == 45
    assert interview["mode"] == "online"
    assert interview["interviewers"] == ["u-1"]
    assert "time" not in interview


def test_interview_validation(service):
    with pytest.raises(ApiError):
        service.interviews.create({"mode": "carrier-pigeon"}, ADMIN)
    with pytest.raises(ApiError):
        service.interviews.create({"status": "postponed"}, ADMIN)


def test_notes_mode_packs_metadata_and_preserves_it_on_update(store, service):
    service.cfg.INTERVIEW_METADATA_MODE = "notes"

    created = service.interviews.create(
        {"notes": "Bring laptop", "mode": "offline", "interviewers": ["u-1", "u-2"], "location": "Room 4"},
        ADMIN,
    )
    assert created["notes"] == "Bring laptop"
    assert created["mode"] == "offline"
    assert created["interviewers"] == ["u-1", "u-2"]

    raw = store.select("interviews", {"id": created["id"]})[0]
    assert "__METADATA__" in raw["notes"]
    assert raw["mode"] is None

    after_notes = service.interviews.update(created["id"], {"notes": "Bring ID"}, ADMIN)
    assert after_notes["notes"] == "Bring ID"
    assert after_notes["mode"] == "offline"
    assert after_notes["interviewers"] == ["u-1", "u-2"]

    after_mode = service.interviews.update(created["id"], {"mode": "online"}, ADMIN)
    assert after_mode["notes"] == "Bring ID"
    assert after_mode["mode"] == "online"

    service.refresh()
    reloaded = service.interviews.get_by_id(created["id"])
    assert reloaded["mode"] == "online"
    assert reloaded["interviewers"] == ["u-1", "u-2"]


def test_columns_mode_writes_dedicated_columns(store, service):
    created = service.interviews.create({"notes": "n", "mode": "online", "interviewers": ["u-3"]}, ADMIN)
    raw = store.select("interviews", {"id": created["id"]})[0]
    assert raw["notes"] == "n"
    assert raw["mode"] == "online"
    assert raw["interviewers"] == ["u-3"]


def test_legacy_packed_notes_are_readable_in_columns_mode(store, service):
    store.insert("interviews", {"notes": 'old\n\n__METADATA__\n{"mode": "online", "interviewers": ["u-9"]}'})
    service.refresh()
    [interview] = service.interviews.list()
    assert interview["notes"] == "old"
    assert interview["mode"] == "online"
    assert service.interviews.get_by_interviewer("u-9") == [interview]


def test_upcoming_interviews(service):
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    service.interviews.create({"scheduledAt": "2029-12-31T10:00:00Z"}, ADMIN)
    later = service.interviews.create({"scheduledAt": "2030-03-01T10:00:00Z"}, ADMIN)
    sooner = service.interviews.create({"scheduledAt": "2030-02-01T10:00:00Z"}, ADMIN)
    service.interviews.create({"scheduledAt": "2030-01-15T10:00:00Z", "status": "cancelled"}, ADMIN)

    assert [i["id"] for i in service.interviews.get_upcoming(now)] == [sooner["id"], later["id"]]


def test_offer_defaults_and_candidate_lookup(service):
    job = _job(service)
    cand = _candidate(service, job["id"])
    offer = service.offers.create({"candidateId": cand["id"], "salary": 120000, "benefits": ["health"]}, ADMIN)
    assert offer["status"] == "draft"
    assert offer["candidateName"] == "Ada Lovelace"
    assert offer["jobTitle"] == "Backend Engineer"
    assert service.offers.get_by_candidate(cand["id"]) == [offer]

    with pytest.raises(ApiError):
        service.offers.update(offer["id"], {"status": "pending"}, ADMIN)
    assert service.offers.update(offer["id"], {"status": "sent"}, ADMIN)["status"] == "sent"


def test_feedback_validation_and_queries(service):
    cand = _candidate(service)
    interview = service.interviews.create({"candidateId": cand["id"]}, ADMIN)

    with pytest.raises(ApiError):
        service.feedback.create({"interviewId": interview["id"], "ratings": {"technical": 6}, "recommendation": "hire"}, "u-1")
    with pytest.raises(ApiError):
        service.feedback.create({"interviewId": interview["id"], "recommendation": "maybe"}, "u-1")
    with pytest.raises(ApiError):
        service.feedback.create({"interviewId": interview["id"], "ratings": {"technical": 3}}, "u-1")

    fb = service.feedback.create({"interviewId": interview["id"], "ratings": {"technical": 3}, "recommendation": "reject"}, "u-1")
    assert fb["candidateId"] == cand["id"]
    assert fb["candidateName"] == "Ada Lovelace"
    assert fb["interviewerId"] == "u-1"
    assert service.feedback.get_by_interview(interview["id"]) == [fb]
    assert service.feedback.get_by_candidate(cand["id"]) == [fb]
    assert service.get_aggregate_feedback(cand["id"])["overallRecommendation"] == "reject"


def test_no_feedback_means_no_aggregate(service):
    cand = _candidate(service)
    assert service.get_aggregate_feedback(cand["id"]) is None


def test_resume_upload(service, tmp_path):
    cand = _candidate(service)
    updated = service.candidates.upload_resume(
        cand["id"],
        filename="My CV.pdf",
        content_type="application/pdf",
        data=b"%PDF-1.4 test",
        acting_user_id=ADMIN,
    )
    assert updated["resumeName"] == "My CV.pdf"
    assert updated["resumeSize"] == 13
    assert updated["resumeUploadedAt"]
    prefix = f"/files/resumes/candidates/{cand['id']}/"
    assert updated["resumeUrl"].startswith(prefix)
    assert updated["resumeUrl"].endswith("_My_CV.pdf")

    stored_path = service.blob_store.local_path("resumes", updated["resumeUrl"][len("/files/resumes/"):])
    with open(stored_path, "rb") as f:
        assert f.read() == b"%PDF-1.4 test"


def test_resume_upload_rejects_bad_type_and_size(service):
    cand = _candidate(service)
    with pytest.raises(ApiError) as exc:
        service.candidates.upload_resume(
            cand["id"], filename="a.png", content_type="image/png", data=b"x", acting_user_id=ADMIN
        )
    assert exc.value.code == "BAD_REQUEST"

    service.cfg.RESUME_MAX_BYTES = 10
    with pytest.raises(ApiError) as exc:
        service.candidates.upload_resume(
            cand["id"], filename="a.pdf", content_type="application/pdf", data=b"x" * 11, acting_user_id=ADMIN
        )
    assert exc.value.http_status == 413
    assert service.candidates.get_by_id(cand["id"])["resumeUrl"] is None


def test_resume_upload_logs_orphaned_object_when_candidate_write_fails(service, caplog):
    cand = _candidate(service)
    assert [c["id"] for c in service.candidates.list()] == [cand["id"]]
    service.gateway.store.delete("candidates", cand["id"])

    with caplog.at_level(logging.WARNING, logger="actions.candidates"):
        with pytest.raises(RemoteStoreError):
            service.candidates.upload_resume(
                cand["id"], filename="cv.pdf", content_type="application/pdf", data=b"%PDF", acting_user_id=ADMIN
            )
    [record] = [r for r in caplog.records if "orphaned object" in r.getMessage()]
    assert f"resumes/candidates/{cand['id']}/" in record.getMessage()


def test_failed_write_leaves_cache_untouched(service):
    job = _job(service)
    assert [j["id"] for j in service.jobs.list()] == [job["id"]]
    service.gateway.store.delete("jobs", job["id"])

    with pytest.raises(RemoteStoreError):
        service.jobs.update(job["id"], {"title": "Renamed"}, ADMIN)
    assert service.jobs.get_by_id(job["id"])["title"] == "Backend Engineer"


def test_audit_log_query_aliases(service):
    job = _job(service)
    entries = service.get_audit_log({"entityType": "jobs", "actingUserId": ADMIN})
    assert [e["entityId"] for e in entries] == [job["id"]]


@pytest.mark.parametrize("metadata_mode", ["columns", "notes"])
def test_clearing_interview_fields_matches_store(service, metadata_mode):
    service.cfg.INTERVIEW_METADATA_MODE = metadata_mode
    created = service.interviews.create({"notes": "n", "mode": "online", "interviewers": ["u-7"]}, ADMIN)
    assert [i["id"] for i in service.interviews.get_by_interviewer("u-7")] == [created["id"]]

    updated = service.interviews.update(created["id"], {"interviewers": [], "mode": None}, ADMIN)
    stored = service.gateway.get("interviews", created["id"])

    assert updated["interviewers"] == [] and stored["interviewers"] in (None, [])
    assert updated["mode"] is None and stored["mode"] is None
    assert updated["notes"] == "n"
    assert service.interviews.get_by_id(created["id"])["interviewers"] == []
    assert service.interviews.get_by_interviewer("u-7") == []
