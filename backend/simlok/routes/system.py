# Overview: Flask API routes for health and version checks.
"""
System health and version endpoints.

/health runs a handful of cheap probes (database, session store, accounts,
QR signing key). Each probe reports healthy, degraded or unhealthy; any
unhealthy probe turns the response into a 503.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Submission, User, SessionToken, SimlokSequence, QrScan
from simlok.time_utils import utcnow

system_bp = Blueprint("system", __name__)

DEV_SECRET_KEY = "dev-secret-key-change-me"


def _timed_check(name: str, probe) -> dict:
    """
    Run `probe()` and attach its latency.

    `probe` returns (status, extra) where extra is merged into the result.
    Exceptions are logged and reported as unhealthy without details.
    """
    start = time.perf_counter()
    try:
        status, extra = probe()
    except Exception:
        current_app.logger.exception("Health check '%s' failed", name)
        status, extra = "unhealthy", {"error": f"{name} error"}

    result = {"status": status, "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    result.update(extra)
    return result


def _database_probe():
    return "healthy", {
        "details": {
            "users": db.session.query(User).count(),
            "submissions": db.session.query(Submission).count(),
            "qr_scans": db.session.query(QrScan).count(),
            "sequence_years": db.session.query(SimlokSequence).count(),
        }
    }


def _session_probe():
    now = utcnow()
    live = db.session.query(SessionToken).filter(SessionToken.is_revoked.is_(False))
    return "healthy", {
        "details": {
            "active_sessions": live.filter(SessionToken.expires_at >= now).count(),
            # removed by `flask maintenance cleanup-sessions`
            "expired_pending_cleanup": live.filter(SessionToken.expires_at < now).count(),
        }
    }


def _accounts_probe():
    super_admins = db.session.query(User).filter_by(role="SUPER_ADMIN", is_active=True).count()
    if not super_admins:
        # Nobody could create or repair accounts
        return "degraded", {"warning": "No active SUPER_ADMIN account (run `flask users create`)"}
    return "healthy", {"details": {"super_admins": super_admins}}


def _qr_key_probe():
    config = current_app.config
    if not config.get("QR_SECRET_KEY") and config.get("SECRET_KEY") == DEV_SECRET_KEY:
        return "degraded", {"warning": "QR tokens are signed with the development key"}
    return "healthy", {}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start = time.perf_counter()

    checks = {
        "database": _timed_check("Database", _database_probe),
        "session_service": _timed_check("Session service", _session_probe),
        "auth_service": _timed_check("Auth service", _accounts_probe),
        "qr_signing": _timed_check("QR signing", _qr_key_probe),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.perf_counter() - start) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info. Never exposes keys, credentials or paths."""
    return {
        "api_version": "1.0.0",
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
