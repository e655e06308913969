# Overview: Service-layer operations for QR tokens; issuance, verification and scan log.

"""
QR Issuance & Gate Scan Verification

Every submission carries an opaque token in `qrcode`; the printed permit and
the QR image both carry that string. At the gate a verifier scans it and the
service records a QrScan row.

TOKEN FORMATS:
    SL:<id>:<nonce>:<sig>   current; sig = HMAC-SHA256(key, "<id>|<nonce>")[:32]
    SL|<base64 json>        legacy; json carries {"id": ...} or {"i": ...}
    <anything else>         legacy bare token, matched exactly against `qrcode`

Only the current format is self-verifying. Legacy strings are accepted only
when they equal the token stored on the submission they point at.

RULES:
- Only APPROVED submissions can be scanned; a refused scan appends nothing
- Every accepted scan appends a row, including repeat scans by the same verifier
- Scanning never mutates the submission
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import QrScan, Submission, User
from .submission_service import SubmissionNotFoundError
from simlok.time_utils import utcnow


TOKEN_PREFIX = "SL"
SIGNATURE_LENGTH = 32
FALLBACK_LOCATION = "Lokasi tidak tersedia"


class QrVerificationError(ValueError):
    """Scanned string is malformed, tampered, or points at a permit that cannot be scanned."""
    pass


def _signing_key() -> bytes:
    key = current_app.config.get("QR_SECRET_KEY") or current_app.config["SECRET_KEY"]
    return key.encode("utf-8")


def sign(submission_id: int, nonce: str) -> str:
    message = f"{submission_id}|{nonce}".encode("utf-8")
    digest = hmac.new(_signing_key(), message, hashlib.sha256).hexdigest()
    return digest[:SIGNATURE_LENGTH]


def issue_token(submission_id: int) -> str:
    """Build a fresh signed token for a submission id."""
    nonce = secrets.token_hex(8)
    return f"{TOKEN_PREFIX}:{submission_id}:{nonce}:{sign(submission_id, nonce)}"


def _parse_signed(raw: str) -> int:
    parts = raw.split(":")
    if len(parts) != 4 or parts[0] != TOKEN_PREFIX:
        raise QrVerificationError("QR code tidak valid atau data telah diubah")

    _, id_part, nonce, signature = parts
    if not id_part.isdigit() or not nonce:
        raise QrVerificationError("QR code tidak valid atau data telah diubah")

    submission_id = int(id_part)
    if not hmac.compare_digest(sign(submission_id, nonce), signature):
        raise QrVerificationError("QR code tidak valid atau data telah diubah")
    return submission_id


def _parse_legacy_base64(raw: str) -> int:
    parts = raw.split("|")
    if len(parts) != 2 or parts[0] != TOKEN_PREFIX or not parts[1]:
        raise QrVerificationError("Format QR tidak valid")

    try:
        payload = json.loads(base64.b64decode(parts[1], validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        raise QrVerificationError("Format QR tidak valid")

    if not isinstance(payload, dict):
        raise QrVerificationError("Format QR tidak valid")

    value = payload.get("id", payload.get("i"))
    try:
        return int(value)
    except (TypeError, ValueError):
        raise QrVerificationError("Format ID pengajuan tidak valid")


def resolve_submission(qr_string: str) -> Submission:
    """
    Map a scanned string to its submission.

    Raises:
        QrVerificationError: empty, malformed or tampered input (400)
        SubmissionNotFoundError: well-formed token for a missing submission (404)
    """
    raw = (qr_string or "").strip()
    if not raw:
        raise QrVerificationError("String QR/Barcode diperlukan")

    if raw.startswith(f"{TOKEN_PREFIX}:"):
        submission_id = _parse_signed(raw)
        submission = db.session.get(Submission, submission_id)
        if submission is None:
            raise SubmissionNotFoundError("Pengajuan tidak ditemukan")
        return submission

    if raw.startswith(f"{TOKEN_PREFIX}|"):
        submission_id = _parse_legacy_base64(raw)
        submission = db.session.get(Submission, submission_id)
        if submission is None:
            raise SubmissionNotFoundError("Pengajuan tidak ditemukan")
        if submission.qrcode != raw:
            raise QrVerificationError("QR code tidak valid atau data telah diubah")
        return submission

    submission = db.session.query(Submission).filter_by(qrcode=raw).first()
    if submission is None:
        raise SubmissionNotFoundError("Pengajuan tidak ditemukan")
    return submission


def verify_scan(
    qr_string: str,
    *,
    verifier: User,
    scan_location: str | None = None,
    notes: str | None = None,
) -> tuple[QrScan, Submission]:
    """
    Verify a scanned permit and append a QrScan row.

    Location falls back to the verifier's address, then to a fixed
    placeholder. Returns (scan, submission).
    """
    submission = resolve_submission(qr_string)

    if submission.approval_status != "APPROVED":
        raise QrVerificationError("Pengajuan ini belum disetujui")

    location = (scan_location or "").strip() or (verifier.address or "").strip() or FALLBACK_LOCATION

    scan = QrScan(
        submission_id=submission.id,
        scanned_by_id=verifier.id,
        scanner_name=verifier.officer_name,
        scan_location=location,
        notes=(notes or "").strip() or None,
        scanned_at=utcnow(),
    )
    db.session.add(scan)
    db.session.commit()

    current_app.logger.info(
        "QR scan recorded: submission=%s scan=%s verifier=%s",
        submission.id, scan.id, verifier.id,
    )
    return scan, submission


def list_scans(submission_id: int) -> list[QrScan]:
    """All scans of one submission, oldest first."""
    if db.session.get(Submission, submission_id) is None:
        raise SubmissionNotFoundError(f"Submission {submission_id} not found")
    return (
        db.session.query(QrScan)
        .filter(QrScan.submission_id == submission_id)
        .order_by(QrScan.scanned_at.asc(), QrScan.id.asc())
        .all()
    )


def scan_history(
    *,
    date_from=None,
    date_to=None,
    verifier: str | None = None,
    simlok_number: str | None = None,
    search: str | None = None,
    scanned_by_id: int | None = None,
    submission_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[QrScan], int]:
    """
    Filtered scan log, newest first. Returns (items, total).

    `date_to` is inclusive of the whole day when it carries no time part.
    """
    query = db.session.query(QrScan).join(Submission, QrScan.submission_id == Submission.id)

    if date_from is not None:
        query = query.filter(QrScan.scanned_at >= date_from)
    if date_to is not None:
        if date_to.hour == 0 and date_to.minute == 0 and date_to.second == 0:
            date_to = date_to + timedelta(days=1)
            query = query.filter(QrScan.scanned_at < date_to)
        else:
            query = query.filter(QrScan.scanned_at <= date_to)
    if submission_id is not None:
        query = query.filter(QrScan.submission_id == submission_id)
    if scanned_by_id is not None:
        query = query.filter(QrScan.scanned_by_id == scanned_by_id)
    if verifier:
        query = query.filter(QrScan.scanner_name.ilike(f"%{verifier}%"))
    if simlok_number:
        query = query.filter(Submission.simlok_number.ilike(f"%{simlok_number}%"))
    if search:
        term = f"%{search}%"
        query = query.filter(
            db.or_(
                Submission.simlok_number.ilike(term),
                Submission.vendor_name.ilike(term),
                Submission.job_description.ilike(term),
                QrScan.scanner_name.ilike(term),
                QrScan.scan_location.ilike(term),
            )
        )

    total = query.count()
    items = (
        query.order_by(QrScan.scanned_at.desc(), QrScan.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return items, total
