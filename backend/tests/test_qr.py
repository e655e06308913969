"""
QR token and gate scan tests.

Verifies:
- Issued tokens are signed and resolve back to their submission
- Tampered, malformed and unapproved scans are refused and log nothing
- Repeat scans append rows and never mutate the submission
- Scan history filters, and verifiers only see their own scans
"""

import base64
import json

import pytest

from simlok.models import QrScan
from simlok.services import qr_service
from simlok.services.qr_service import FALLBACK_LOCATION, QrVerificationError
from simlok.services.submission_service import SubmissionNotFoundError


def _legacy_token(submission_id: int) -> str:
    payload = base64.b64encode(json.dumps({"id": submission_id}).encode("utf-8")).decode("ascii")
    return f"SL|{payload}"


class TestTokens:
    def test_issued_token_resolves(self, submission):
        prefix, id_part, nonce, signature = submission.qrcode.split(":")
        assert prefix == "SL"
        assert int(id_part) == submission.id
        assert len(nonce) == 16
        assert len(signature) == qr_service.SIGNATURE_LENGTH

        assert qr_service.resolve_submission(submission.qrcode).id == submission.id

    def test_tokens_are_unique_per_issue(self, submission):
        assert qr_service.issue_token(submission.id) != qr_service.issue_token(submission.id)

    def test_tampered_id_rejected(self, submission):
        _, _, nonce, signature = submission.qrcode.split(":")
        with pytest.raises(QrVerificationError):
            qr_service.resolve_submission(f"SL:{submission.id + 1}:{nonce}:{signature}")

    def test_valid_signature_for_missing_submission(self, db_session):
        with pytest.raises(SubmissionNotFoundError):
            qr_service.resolve_submission(qr_service.issue_token(424242))

    def test_empty_string(self, db_session):
        with pytest.raises(QrVerificationError):
            qr_service.resolve_submission("   ")

    def test_legacy_base64_must_match_stored_token(self, db_session, submission):
        with pytest.raises(QrVerificationError):
            qr_service.resolve_submission(_legacy_token(submission.id))

        submission.qrcode = _legacy_token(submission.id)
        db_session.commit()
        assert qr_service.resolve_submission(_legacy_token(submission.id)).id == submission.id

    def test_legacy_garbage_rejected(self, db_session):
        with pytest.raises(QrVerificationError):
            qr_service.resolve_submission("SL|not-base64!!")

    def test_bare_legacy_token_exact_match(self, db_session, submission):
        submission.qrcode = "LEGACY-QR-0001"
        db_session.commit()
        assert qr_service.resolve_submission("LEGACY-QR-0001").id == submission.id
        with pytest.raises(SubmissionNotFoundError):
            qr_service.resolve_submission("LEGACY-QR-0002")


class TestVerify:
    def test_scan_approved_permit(self, client, headers, users, approved_submission, db_session):
        resp = client.post(
            "/api/qr/verify",
            json={"qrData": approved_submission.qrcode, "scanLocation": "Gerbang 2", "notes": "Masuk pagi"},
            headers=headers["verifier"],
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["submission"]["simlok_number"] == "SIMLOK/001/2024"
        assert body["scan"]["scan_location"] == "Gerbang 2"
        assert body["scan"]["scanned_by_id"] == users["verifier"].id
        assert body["scan"]["scanner_name"] == users["verifier"].officer_name

    def test_tampered_signature_rejected(self, client, headers, approved_submission, db_session):
        tampered = approved_submission.qrcode[:-1] + ("0" if approved_submission.qrcode[-1] != "0" else "1")
        resp = client.post("/api/qr/verify", json={"qr_data": tampered}, headers=headers["verifier"])
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False
        assert db_session.query(QrScan).count() == 0

    def test_unapproved_permit_refused(self, client, headers, reviewed_submission, db_session):
        resp = client.post(
            "/api/qr/verify", json={"qr_data": reviewed_submission.qrcode}, headers=headers["verifier"]
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Pengajuan ini belum disetujui"
        assert db_session.query(QrScan).count() == 0

    def test_rejected_permit_refused(self, client, headers, users, reviewed_submission, db_session):
        from simlok.services import lifecycle_service

        lifecycle_service.finalize(reviewed_submission.id, approver=users["approver"], decision="REJECTED")
        resp = client.post(
            "/api/qr/verify", json={"qr_data": reviewed_submission.qrcode}, headers=headers["verifier"]
        )
        assert resp.status_code == 400
        assert db_session.query(QrScan).count() == 0

    def test_unknown_permit(self, client, headers, db_session):
        resp = client.post(
            "/api/qr/verify", json={"qr_data": qr_service.issue_token(31337)}, headers=headers["verifier"]
        )
        assert resp.status_code == 404

    def test_missing_qr_data(self, client, headers):
        resp = client.post("/api/qr/verify", json={}, headers=headers["verifier"])
        assert resp.status_code == 400

    def test_double_scan_appends_two_rows(self, client, headers, approved_submission, db_session):
        before = approved_submission.to_dict()

        for _ in range(2):
            resp = client.post(
                "/api/qr/verify", json={"qr_data": approved_submission.qrcode}, headers=headers["verifier"]
            )
            assert resp.status_code == 200

        assert db_session.query(QrScan).filter_by(submission_id=approved_submission.id).count() == 2
        db_session.refresh(approved_submission)
        assert approved_submission.to_dict() == before

    def test_location_falls_back_to_verifier_address(self, client, headers, approved_submission):
        resp = client.post(
            "/api/qr/verify", json={"qr_data": approved_submission.qrcode}, headers=headers["verifier"]
        )
        assert resp.get_json()["scan"]["scan_location"] == "Pos Jaga Utama"

    def test_location_placeholder(self, client, headers, approved_submission):
        resp = client.post(
            "/api/qr/verify",
            json={"qr_data": approved_submission.qrcode, "scan_location": " "},
            headers=headers["admin"],
        )
        assert resp.get_json()["scan"]["scan_location"] == FALLBACK_LOCATION


class TestScanHistory:
    def _scan(self, users, submission, who="verifier", location=None):
        scan, _ = qr_service.verify_scan(submission.qrcode, verifier=users[who], scan_location=location)
        return scan

    def test_verifier_sees_only_own_scans(self, client, headers, users, approved_submission):
        self._scan(users, approved_submission, "verifier")
        self._scan(users, approved_submission, "admin")

        resp = client.get("/api/scan-history", headers=headers["verifier"])
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 1
        assert body["items"][0]["scanned_by_id"] == users["verifier"].id
        assert body["items"][0]["submission"]["simlok_number"] == "SIMLOK/001/2024"

        resp = client.get("/api/scan-history", headers=headers["approver"])
        assert resp.get_json()["count"] == 2

    def test_filters(self, client, headers, users, approved_submission):
        self._scan(users, approved_submission, location="Gerbang Utara")
        self._scan(users, approved_submission, location="Gerbang Selatan")

        resp = client.get("/api/scan-history?search=utara", headers=headers["approver"])
        assert resp.get_json()["count"] == 1

        resp = client.get("/api/scan-history?simlokNumber=001/2024", headers=headers["approver"])
        assert resp.get_json()["count"] == 2

        resp = client.get(f"/api/scan-history?submissionId={approved_submission.id + 1}", headers=headers["approver"])
        assert resp.get_json()["count"] == 0

        resp = client.get("/api/scan-history?dateTo=2000-01-01", headers=headers["approver"])
        assert resp.get_json()["count"] == 0

    def test_newest_first_and_paged(self, client, headers, users, approved_submission):
        scans = [self._scan(users, approved_submission, location=f"Gate {i}") for i in range(3)]

        resp = client.get("/api/scan-history?limit=2&page=1", headers=headers["approver"])
        body = resp.get_json()
        assert body["count"] == 3
        assert body["pages"] == 2
        assert [s["id"] for s in body["items"]] == [scans[2].id, scans[1].id]

    def test_bad_date(self, client, headers, db_session):
        resp = client.get("/api/scan-history?dateFrom=yesterday", headers=headers["approver"])
        assert resp.status_code == 400

    def test_vendor_has_no_scan_history(self, client, headers):
        resp = client.get("/api/scan-history", headers=headers["vendor"])
        assert resp.status_code == 403
