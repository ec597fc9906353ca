from __future__ import annotations

import pytest

from utils import RemoteStoreError


def test_insert_assigns_id_and_timestamps(store):
    row = store.insert("jobs", {"title": "SRE", "skills": ["k8s"]})
    assert row["id"]
    assert row["created_at"].endswith("Z")
    assert row["skills"] == ["k8s"]


def test_select_filters_and_none_means_null(store):
    a = store.insert("candidates", {"name": "A", "job_id": "j-1"})
    store.insert("candidates", {"name": "B", "job_id": "j-2"})
    c = store.insert("candidates", {"name": "C"})

    assert [r["id"] for r in store.select("candidates", {"job_id": "j-1"})] == [a["id"]]
    assert [r["id"] for r in store.select("candidates", {"job_id": None})] == [c["id"]]


def test_update_returns_fresh_row(store):
    row = store.insert("offers", {"candidate_name": "A", "status": "draft"})
    updated = store.update("offers", row["id"], {"status": "sent"})
    assert updated["status"] == "sent"
    assert updated["candidate_name"] == "A"


def test_missing_rows_are_not_found(store):
    with pytest.raises(RemoteStoreError) as exc:
        store.update("offers", "nope", {"status": "sent"})
    assert exc.value.code == "NOT_FOUND"
    assert exc.value.http_status == 404

    with pytest.raises(RemoteStoreError):
        store.delete("offers", "nope")


def test_unknown_table_and_column(store):
    with pytest.raises(RemoteStoreError):
        store.select("payslips")
    with pytest.raises(RemoteStoreError) as exc:
        store.insert("jobs", {"title": "x", "bogus": 1})
    assert exc.value.code == "REMOTE_STORE"
    assert exc.value.details["columns"] == ["bogus"]
