# Overview: Flask API routes for QR verification and the gate scan log.

"""
Gate scan routes.

- POST /api/qr/verify     verify a scanned permit and log the scan (VERIFY_QR)
- GET  /api/scan-history  filtered scan log (VIEW_SCAN_HISTORY)

Verifiers only ever see their own scans in the history.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import qr_service
from ..services.qr_service import QrVerificationError
from ..services.submission_service import SubmissionNotFoundError
from ..time_utils import parse_iso_datetime


scans_bp = Blueprint("scans", __name__, url_prefix="/api")


def _first(data: dict, *keys):
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


@scans_bp.post("/qr/verify")
@require_auth
@require_permission("VERIFY_QR")
def verify_qr_route():
    """
    Verify a scanned QR/barcode string.

    Body:
    {
        "qr_data": "SL:12:...:...",     // "qrData" / "qrcode" also accepted
        "scan_location": "Gate 1",      // optional, falls back to verifier address
        "notes": "..."                  // optional
    }

    Returns 200 with the scan and the permit it belongs to. Malformed,
    tampered or unapproved permits return 400; unknown permits 404.
    """
    data = request.get_json(silent=True) or {}
    qr_data = _first(data, "qr_data", "qrData", "qrcode")
    scan_location = _first(data, "scan_location", "scanLocation")

    if qr_data is not None and not isinstance(qr_data, str):
        return jsonify({"success": False, "error": "qr_data must be a string"}), 400

    try:
        scan, submission = qr_service.verify_scan(
            qr_data,
            verifier=g.current_user,
            scan_location=scan_location,
            notes=data.get("notes"),
        )
    except QrVerificationError as e:
        current_app.logger.info("QR scan refused for user %s: %s", g.current_user.id, e)
        return jsonify({"success": False, "error": str(e)}), 400
    except SubmissionNotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to verify QR code")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return jsonify({
        "success": True,
        "message": "SIMLOK valid",
        "scan": scan.to_dict(),
        "submission": submission.to_dict(include_workers=True),
    })


@scans_bp.get("/scan-history")
@require_auth
@require_permission("VIEW_SCAN_HISTORY")
def scan_history_route():
    """
    Scan log, newest first.

    Query params:
    - dateFrom, dateTo: ISO dates (dateTo inclusive of the whole day)
    - verifier: scanner name contains
    - simlokNumber: permit number contains
    - submissionId: one permit only
    - search: permit number, vendor, job, scanner or location contains
    - page, limit (1..100, default 20)
    """
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 20, type=int)

    # Clamp
    if page < 1:
        page = 1
    if limit < 1:
        limit = 1
    if limit > 100:
        limit = 100

    try:
        date_from = parse_iso_datetime(request.args.get("dateFrom"))
        date_to = parse_iso_datetime(request.args.get("dateTo"))
    except ValueError:
        return jsonify({"error": "dateFrom/dateTo must be ISO-8601 dates"}), 400

    scanned_by_id = g.current_user.id if g.current_user.role == "VERIFIER" else None

    items, total = qr_service.scan_history(
        date_from=date_from,
        date_to=date_to,
        verifier=request.args.get("verifier"),
        simlok_number=request.args.get("simlokNumber"),
        search=request.args.get("search"),
        scanned_by_id=scanned_by_id,
        submission_id=request.args.get("submissionId", type=int),
        limit=limit,
        offset=(page - 1) * limit,
    )

    return jsonify({
        "items": [s.to_dict(include_submission=True) for s in items],
        "count": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit,
    })
