"""
Submission listing, role scope and dashboard statistics tests.
"""

import pytest

from simlok.services import lifecycle_service

from conftest import create_submission_for


@pytest.fixture
def mixed(users):
    """One submission in each lifecycle stage, two vendors."""
    pending = create_submission_for(users["vendor"], work_location="Area Pending")
    reviewed = create_submission_for(users["vendor"], work_location="Area Reviewed")
    approved = create_submission_for(users["other_vendor"], work_location="Area Approved")
    rejected = create_submission_for(users["other_vendor"], work_location="Area Rejected")

    for s in (reviewed, approved, rejected):
        lifecycle_service.submit_review(
            s.id,
            reviewer=users["reviewer"],
            verdict="MEETS_REQUIREMENTS",
            note_for_approver="ok",
            note_for_vendor="ok",
        )
    lifecycle_service.finalize(
        approved.id, approver=users["approver"], decision="APPROVED",
        simlok_number="SIMLOK/010/2024", tembusan="HSSE",
    )
    lifecycle_service.finalize(rejected.id, approver=users["approver"], decision="REJECTED")

    return {"pending": pending, "reviewed": reviewed, "approved": approved, "rejected": rejected}


def _locations(resp):
    return sorted(item["work_location"] for item in resp.get_json()["items"])


class TestRoleScope:
    def test_vendor_sees_own(self, client, headers, mixed):
        resp = client.get("/api/submissions", headers=headers["vendor"])
        assert resp.status_code == 200
        assert _locations(resp) == ["Area Pending", "Area Reviewed"]

    def test_reviewer_sees_all(self, client, headers, mixed):
        resp = client.get("/api/submissions", headers=headers["reviewer"])
        assert resp.get_json()["count"] == 4

    def test_approver_sees_reviewed(self, client, headers, mixed):
        resp = client.get("/api/submissions", headers=headers["approver"])
        assert _locations(resp) == ["Area Approved", "Area Rejected", "Area Reviewed"]

    def test_verifier_sees_approved(self, client, headers, mixed):
        resp = client.get("/api/submissions", headers=headers["verifier"])
        assert _locations(resp) == ["Area Approved"]

    def test_status_overrides_role_default(self, client, headers, mixed):
        resp = client.get("/api/submissions?status=PENDING_REVIEW", headers=headers["approver"])
        assert _locations(resp) == ["Area Pending"]

        resp = client.get("/api/submissions?status=rejected", headers=headers["verifier"])
        assert _locations(resp) == ["Area Rejected"]

    def test_status_never_widens_vendor_scope(self, client, headers, mixed):
        resp = client.get("/api/submissions?status=APPROVED", headers=headers["vendor"])
        assert resp.get_json()["count"] == 0

    def test_invalid_status(self, client, headers, mixed):
        resp = client.get("/api/submissions?status=DONE", headers=headers["reviewer"])
        assert resp.status_code == 400
        assert resp.get_json()["field"] == "status"


class TestFiltersAndPaging:
    def test_review_and_final_filters(self, client, headers, mixed):
        resp = client.get(
            "/api/submissions?reviewStatus=MEETS_REQUIREMENTS&finalStatus=PENDING_APPROVAL",
            headers=headers["admin"],
        )
        assert _locations(resp) == ["Area Reviewed"]

    def test_vendor_and_search(self, client, headers, mixed):
        resp = client.get("/api/submissions?vendor=beta", headers=headers["admin"])
        assert resp.get_json()["count"] == 2

        resp = client.get("/api/submissions?search=010/2024", headers=headers["admin"])
        assert _locations(resp) == ["Area Approved"]

    def test_sorting(self, client, headers, mixed):
        resp = client.get("/api/submissions?sortBy=work_location&sortOrder=asc", headers=headers["admin"])
        locations = [item["work_location"] for item in resp.get_json()["items"]]
        assert locations == sorted(locations)

    def test_unknown_sort_column_falls_back(self, client, headers, mixed):
        resp = client.get("/api/submissions?sortBy=password_hash", headers=headers["admin"])
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 4

    def test_limit_is_clamped(self, client, headers, mixed):
        resp = client.get("/api/submissions?limit=1000&page=0", headers=headers["admin"])
        body = resp.get_json()
        assert body["limit"] == 100
        assert body["page"] == 1

    def test_paging(self, client, headers, mixed):
        first = client.get("/api/submissions?limit=3&page=1", headers=headers["admin"]).get_json()
        second = client.get("/api/submissions?limit=3&page=2", headers=headers["admin"]).get_json()
        assert first["pages"] == 2
        assert len(first["items"]) == 3
        assert len(second["items"]) == 1
        ids = {i["id"] for i in first["items"]} | {i["id"] for i in second["items"]}
        assert len(ids) == 4


class TestStatistics:
    def test_stats_follow_scope(self, client, headers, mixed):
        stats = client.get("/api/submissions/stats", headers=headers["admin"]).get_json()
        assert stats["total"] == 4
        assert stats["pending"] == 2
        assert stats["approved"] == 1
        assert stats["rejected"] == 1
        assert stats["review"]["PENDING_REVIEW"] == 1
        assert stats["review"]["MEETS_REQUIREMENTS"] == 3

        vendor_stats = client.get("/api/submissions/stats", headers=headers["vendor"]).get_json()
        assert vendor_stats["total"] == 2
        assert vendor_stats["approved"] == 0

    def test_stats_inline_with_list(self, client, headers, mixed):
        body = client.get("/api/submissions?stats=true", headers=headers["verifier"]).get_json()
        assert body["stats"]["total"] == 1
        assert body["stats"]["total_scans"] == 0
