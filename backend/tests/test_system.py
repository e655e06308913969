"""
Health, version and CLI command tests.
"""

from datetime import timedelta

from simlok.models import SecurityEvent, User
from simlok.time_utils import utcnow

from conftest import make_user


class TestHealth:
    def test_healthy_with_super_admin(self, client, users):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["details"]["users"] == len(users)
        assert body["checks"]["auth_service"]["details"]["super_admins"] == 1

    def test_degraded_without_super_admin(self, client, db_session):
        make_user(db_session, "admin@simlok.local", "ADMIN")

        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "degraded"
        assert "warning" in body["checks"]["auth_service"]

    def test_degraded_with_development_qr_key(self, app, client, users, monkeypatch):
        monkeypatch.setitem(app.config, "QR_SECRET_KEY", None)
        monkeypatch.setitem(app.config, "SECRET_KEY", "dev-secret-key-change-me")

        body = client.get("/health").get_json()
        assert body["status"] == "degraded"
        assert body["checks"]["qr_signing"]["status"] == "degraded"

    def test_version(self, client):
        body = client.get("/version").get_json()
        assert body["api_version"] == "1.0.0"
        assert "SECRET_KEY" not in str(body)


class TestCli:
    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "PASS Created user: superadmin@simlok.local" in result.output
        assert db_session.query(User).count() == 6

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert db_session.query(User).count() == 6

    def test_perms_check(self, app, users):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["perms", "check", "approver@simlok.local", "finalize_submission"])
        assert "PASS approver@simlok.local (APPROVER) HAS FINALIZE_SUBMISSION" in result.output

        result = runner.invoke(args=["perms", "check", "reviewer@simlok.local", "FINALIZE_SUBMISSION"])
        assert result.output.startswith("DENY")
        assert "Granted to: ADMIN, APPROVER, SUPER_ADMIN" in result.output

        result = runner.invoke(args=["perms", "check", "reviewer@simlok.local", "LAUNCH_ROCKETS"])
        assert "Unknown permission" in result.output

    def test_perms_list_for_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "VERIFIER"])
        assert result.exit_code == 0
        assert "VERIFY_QR" in result.output
        assert "FINALIZE_SUBMISSION" not in result.output

    def test_cleanup_security_events(self, app, db_session, users):
        now = utcnow()
        db_session.add_all([
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=now - timedelta(days=200)),
            SecurityEvent(event_type="LOGIN_FAILED", success=False, occurred_at=now - timedelta(days=1)),
        ])
        db_session.commit()

        result = app.test_cli_runner().invoke(
            args=["maintenance", "cleanup-security-events", "--retention-days", "90"]
        )
        assert "Deleted 1 security events" in result.output
        assert db_session.query(SecurityEvent).count() == 1
