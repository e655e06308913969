"""
Authorization tests for SIMLOK.

Verifies:
- Unauthenticated requests return 401
- Roles are denied operations outside their permission set (403)
- Vendors only reach their own submissions
- Login, logout and account deactivation behave
"""

import pytest

from simlok.models import SecurityEvent, SessionToken

from conftest import PASSWORD, auth_headers, create_submission_for


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/submissions"),
            ("POST", "/api/submissions"),
            ("GET", "/api/submissions/stats"),
            ("GET", "/api/submissions/export"),
            ("GET", "/api/submissions/next-number"),
            ("GET", "/api/submissions/1"),
            ("PATCH", "/api/submissions/1"),
            ("DELETE", "/api/submissions/1"),
            ("PATCH", "/api/submissions/1/review"),
            ("PATCH", "/api/submissions/1/final"),
            ("POST", "/api/submissions/1/workers"),
            ("DELETE", "/api/submissions/1/workers/1"),
            ("POST", "/api/qr/verify"),
            ("GET", "/api/scan-history"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/submissions", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# ROLE GATING: 403
# =============================================================================


class TestRoleGating:
    """Each role is refused what its permission set does not cover."""

    def test_vendor_cannot_review(self, client, headers, submission):
        resp = client.patch(
            f"/api/submissions/{submission.id}/review",
            json={"review_status": "MEETS_REQUIREMENTS", "note_for_approver": "x", "note_for_vendor": "y"},
            headers=headers["vendor"],
        )
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "REVIEW_SUBMISSION"

    def test_reviewer_cannot_finalize(self, client, headers, reviewed_submission):
        resp = client.patch(
            f"/api/submissions/{reviewed_submission.id}/final",
            json={"final_status": "APPROVED", "simlok_number": "X/1", "tembusan": "HSSE"},
            headers=headers["reviewer"],
        )
        assert resp.status_code == 403

    def test_verifier_cannot_create_submission(self, client, headers):
        resp = client.post("/api/submissions", json={}, headers=headers["verifier"])
        assert resp.status_code == 403

    def test_vendor_cannot_verify_qr(self, client, headers, approved_submission):
        resp = client.post(
            "/api/qr/verify",
            json={"qr_data": approved_submission.qrcode},
            headers=headers["vendor"],
        )
        assert resp.status_code == 403

    def test_vendor_cannot_export(self, client, headers):
        resp = client.get("/api/submissions/export", headers=headers["vendor"])
        assert resp.status_code == 403

    def test_visitor_cannot_edit(self, client, headers, submission):
        resp = client.patch(
            f"/api/submissions/{submission.id}",
            json={"work_location": "Area 5"},
            headers=headers["visitor"],
        )
        assert resp.status_code == 403
        assert "required_permissions" in resp.get_json()

    def test_admin_cannot_create_users(self, client, headers):
        resp = client.post(
            "/api/admin/users",
            json={"email": "x@x.com", "password": PASSWORD, "officer_name": "X"},
            headers=headers["admin"],
        )
        assert resp.status_code == 403

    def test_denial_is_logged(self, client, headers, users, db_session):
        client.get("/api/admin/users", headers=headers["vendor"])

        event = db_session.query(SecurityEvent).filter_by(
            user_id=users["vendor"].id, event_type="PERMISSION_DENIED"
        ).first()
        assert event is not None
        assert event.action == "VIEW_USERS"
        assert event.success is False


class TestVendorOwnership:
    """Vendors only ever see and touch their own submissions."""

    def test_cannot_open_other_vendor_submission(self, client, headers, users):
        foreign = create_submission_for(users["other_vendor"])
        resp = client.get(f"/api/submissions/{foreign.id}", headers=headers["vendor"])
        assert resp.status_code == 403

    def test_cannot_edit_other_vendor_submission(self, client, headers, users):
        foreign = create_submission_for(users["other_vendor"])
        resp = client.patch(
            f"/api/submissions/{foreign.id}",
            json={"work_location": "Area 9"},
            headers=headers["vendor"],
        )
        assert resp.status_code == 403

    def test_cannot_delete_other_vendor_submission(self, client, headers, users):
        foreign = create_submission_for(users["other_vendor"])
        resp = client.delete(f"/api/submissions/{foreign.id}", headers=headers["vendor"])
        assert resp.status_code == 403

    def test_staff_can_open_any_submission(self, client, headers, submission):
        resp = client.get(f"/api/submissions/{submission.id}", headers=headers["reviewer"])
        assert resp.status_code == 200
        assert resp.get_json()["submission"]["id"] == submission.id


# =============================================================================
# SESSIONS
# =============================================================================


class TestSessions:
    def test_login_returns_token_and_permissions(self, client, users):
        resp = client.post("/api/auth/login", json={"email": "VENDOR@acme.co.id", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "VENDOR"
        assert "CREATE_SUBMISSION" in body["permissions"]
        assert len(body["token"]) == 64

        me = client.get("/api/auth/me", headers=auth_headers(body["token"]))
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == "vendor@acme.co.id"

    def test_wrong_password_logs_failure(self, client, users, db_session):
        resp = client.post("/api/auth/login", json={"email": "vendor@acme.co.id", "password": "nope"})
        assert resp.status_code == 401
        assert db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").count() == 1

    def test_missing_credentials(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "vendor@acme.co.id"})
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, headers):
        resp = client.post("/api/auth/logout", headers=headers["vendor"])
        assert resp.status_code == 200

        resp = client.get("/api/auth/me", headers=headers["vendor"])
        assert resp.status_code == 401

    def test_deactivated_user_loses_access(self, client, headers, users, db_session):
        resp = client.delete(f"/api/admin/users/{users['vendor'].id}", headers=headers["super_admin"])
        assert resp.status_code == 200
        assert resp.get_json()["sessions_revoked"] == 1

        resp = client.get("/api/submissions", headers=headers["vendor"])
        assert resp.status_code == 401
        assert db_session.query(SessionToken).filter_by(
            user_id=users["vendor"].id, is_revoked=False
        ).count() == 0

    def test_cannot_deactivate_self(self, client, headers, users):
        resp = client.delete(f"/api/admin/users/{users['super_admin'].id}", headers=headers["super_admin"])
        assert resp.status_code == 400


class TestAdminUsers:
    def test_super_admin_creates_user(self, client, headers):
        resp = client.post(
            "/api/admin/users",
            json={
                "email": "New.Vendor@Gamma.co.id",
                "password": PASSWORD,
                "officer_name": "Sari",
                "role": "vendor",
                "vendor_name": "PT Gamma",
            },
            headers=headers["super_admin"],
        )
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["email"] == "new.vendor@gamma.co.id"
        assert user["role"] == "VENDOR"

    def test_duplicate_email_conflicts(self, client, headers):
        resp = client.post(
            "/api/admin/users",
            json={"email": "vendor@acme.co.id", "password": PASSWORD, "officer_name": "Dup"},
            headers=headers["super_admin"],
        )
        assert resp.status_code == 409

    def test_weak_password_rejected(self, client, headers):
        resp = client.post(
            "/api/admin/users",
            json={"email": "weak@x.com", "password": "short", "officer_name": "Weak"},
            headers=headers["super_admin"],
        )
        assert resp.status_code == 400

    def test_role_change_revokes_sessions(self, client, headers, users):
        resp = client.patch(
            f"/api/admin/users/{users['visitor'].id}",
            json={"role": "VERIFIER"},
            headers=headers["super_admin"],
        )
        assert resp.status_code == 200
        assert resp.get_json()["user"]["role"] == "VERIFIER"

        resp = client.get("/api/auth/me", headers=headers["visitor"])
        assert resp.status_code == 401

    def test_admin_lists_users(self, client, headers):
        resp = client.get("/api/admin/users?role=vendor", headers=headers["admin"])
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 2
