from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from actions import HiringService
from app.utils.auth import require_roles
from app.utils.validators import optional_datetime_arg, query_filters, require_json
from gateway import ENTITY_TYPES
from utils import ApiError, ok

hiring_bp = Blueprint("hiring", __name__)

ANY_ROLE: list[str] = []
STAFF = ["admin", "hr"]
ADMIN = ["admin"]

WRITE_ROLES = {
    "users": ADMIN,
    "jobs": STAFF,
    "candidates": STAFF,
    "interviews": STAFF,
    "offers": STAFF,
    "feedback": ANY_ROLE,
}

# (entity, query arg) -> query method on the entity's action group.
LIST_QUERIES = {
    ("users", "role"): None,
    ("jobs", "status"): "get_by_status",
    ("candidates", "jobId"): "get_by_job",
    ("candidates", "stage"): "get_by_stage",
    ("interviews", "candidateId"): "get_by_candidate",
    ("interviews", "interviewerId"): "get_by_interviewer",
    ("feedback", "candidateId"): "get_by_candidate",
    ("feedback", "interviewId"): "get_by_interview",
    ("offers", "candidateId"): "get_by_candidate",
}


def _svc() -> HiringService:
    return current_app.extensions["hiring_service"]


def _actor() -> str:
    return g.current_user["id"]


def _group(entity: str):
    if entity not in ENTITY_TYPES:
        raise ApiError("NOT_FOUND", f"Unknown collection: {entity}", http_status=404)
    return _svc().group(entity)


def _check_write(entity: str) -> None:
    allowed = WRITE_ROLES.get(entity, ADMIN)
    if allowed and g.current_user["role"] not in allowed:
        raise ApiError("FORBIDDEN", "Insufficient role", http_status=403, details={"required": sorted(allowed)})


def _reply(data, http_status: int = 200):
    body, status = ok(data, http_status)
    return jsonify(body), status


@hiring_bp.get("/<entity>")
@require_roles(ANY_ROLE)
def list_entities(entity: str):
    group = _group(entity)
    items = group.list()

    names = [name for (e, name) in LIST_QUERIES if e == entity]
    for name, value in query_filters(*names).items():
        method = LIST_QUERIES[(entity, name)]
        if method is None:
            items = [x for x in items if str(x.get(name) or "") == value]
            continue
        keep = {x["id"] for x in getattr(group, method)(value)}
        items = [x for x in items if x["id"] in keep]
    return _reply(items)


@hiring_bp.post("/<entity>")
@require_roles(ANY_ROLE)
def create_entity(entity: str):
    group = _group(entity)
    _check_write(entity)
    return _reply(group.create(require_json(), _actor()), 201)


@hiring_bp.get("/<entity>/<entity_id>")
@require_roles(ANY_ROLE)
def get_entity(entity: str, entity_id: str):
    return _reply(_group(entity).require(entity_id))


@hiring_bp.patch("/<entity>/<entity_id>")
@require_roles(ANY_ROLE)
def update_entity(entity: str, entity_id: str):
    group = _group(entity)
    _check_write(entity)
    return _reply(group.update(entity_id, require_json(), _actor()))


@hiring_bp.delete("/<entity>/<entity_id>")
@require_roles(ANY_ROLE)
def delete_entity(entity: str, entity_id: str):
    group = _group(entity)
    _check_write(entity)
    group.delete(entity_id, _actor())
    return _reply({"id": entity_id, "deleted": True})


@hiring_bp.post("/candidates/<candidate_id>/stage")
@require_roles(STAFF)
def move_candidate(candidate_id: str):
    body = require_json()
    return _reply(_svc().candidates.move_to_stage(candidate_id, body.get("stage"), _actor()))


@hiring_bp.post("/candidates/<candidate_id>/resume")
@require_roles(STAFF)
def upload_resume(candidate_id: str):
    f = request.files.get("file")
    if f is None or not f.filename:
        raise ApiError("BAD_REQUEST", "Multipart field 'file' is required", details={"field": "file"})
    updated = _svc().candidates.upload_resume(
        candidate_id,
        filename=f.filename,
        content_type=f.mimetype or "",
        data=f.read(),
        acting_user_id=_actor(),
    )
    return _reply(updated)


@hiring_bp.get("/candidates/<candidate_id>/feedback/aggregate")
@require_roles(ANY_ROLE)
def candidate_feedback_aggregate(candidate_id: str):
    _svc().candidates.require(candidate_id)
    return _reply(_svc().get_aggregate_feedback(candidate_id))


@hiring_bp.get("/interviews/upcoming")
@require_roles(ANY_ROLE)
def upcoming_interviews():
    return _reply(_svc().interviews.get_upcoming(optional_datetime_arg("now")))


@hiring_bp.get("/analytics/snapshot")
@require_roles(ANY_ROLE)
def analytics():
    return _reply(_svc().get_analytics_snapshot(optional_datetime_arg("now")))


@hiring_bp.get("/audit-log")
@require_roles(STAFF)
def audit_log():
    filters = query_filters("entity", "entityType", "entityId", "userId", "actingUserId", "action")
    return _reply(_svc().get_audit_log(filters))


@hiring_bp.post("/maintenance/reconcile-applicant-counts")
@require_roles(ADMIN)
def reconcile_applicant_counts():
    return _reply({"changed": _svc().reconcile_applicant_counts(_actor())})


@hiring_bp.post("/refresh")
@require_roles(ANY_ROLE)
def refresh():
    return _reply({"counts": _svc().refresh()})
