from __future__ import annotations

from ..extensions import db
from simlok.time_utils import to_utc_z


# Workflow states (must match services/lifecycle_service.py)
REVIEW_STATUSES = ("PENDING_REVIEW", "MEETS_REQUIREMENTS", "NOT_MEETS_REQUIREMENTS")
APPROVAL_STATUSES = ("PENDING_APPROVAL", "APPROVED", "REJECTED")


class Submission(db.Model):
    """
    One SIMLOK (site entry permit) request from a vendor.

    LIFECYCLE:
    - review_status:   PENDING_REVIEW -> MEETS_REQUIREMENTS | NOT_MEETS_REQUIREMENTS
                       (revisable while approval is pending)
    - approval_status: PENDING_APPROVAL -> APPROVED | REJECTED (terminal)

    Once approval_status leaves PENDING_APPROVAL every content field is frozen.
    simlok_number / simlok_date are set if and only if approval_status == APPROVED.
    """
    __tablename__ = "submissions"
    __table_args__ = (
        db.CheckConstraint(
            "review_status IN ('PENDING_REVIEW', 'MEETS_REQUIREMENTS', 'NOT_MEETS_REQUIREMENTS')",
            name="ck_submissions_review_status",
        ),
        db.CheckConstraint(
            "approval_status IN ('PENDING_APPROVAL', 'APPROVED', 'REJECTED')",
            name="ck_submissions_approval_status",
        ),
        db.Index("ix_submissions_status_pair", "review_status", "approval_status"),
        db.Index("ix_submissions_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Owning vendor account
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Vendor-supplied fields
    vendor_name = db.Column(db.String(191), nullable=False, index=True)
    vendor_phone = db.Column(db.String(32), nullable=True)
    based_on = db.Column(db.Text, nullable=False)
    officer_name = db.Column(db.String(191), nullable=False)
    job_description = db.Column(db.Text, nullable=False)
    work_location = db.Column(db.String(191), nullable=False)
    implementation = db.Column(db.Text, nullable=True)
    implementation_start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    implementation_end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    working_hours = db.Column(db.String(191), nullable=False)
    holiday_working_hours = db.Column(db.String(191), nullable=True)
    other_notes = db.Column(db.Text, nullable=True)
    work_facilities = db.Column(db.Text, nullable=False)
    worker_names = db.Column(db.Text, nullable=False)
    worker_count = db.Column(db.Integer, nullable=True)

    # Generic supporting documents
    supporting_doc1_type = db.Column(db.String(64), nullable=True)
    supporting_doc1_number = db.Column(db.String(128), nullable=True)
    supporting_doc1_date = db.Column(db.DateTime(timezone=True), nullable=True)
    supporting_doc1_upload = db.Column(db.String(512), nullable=True)
    supporting_doc2_type = db.Column(db.String(64), nullable=True)
    supporting_doc2_number = db.Column(db.String(128), nullable=True)
    supporting_doc2_date = db.Column(db.DateTime(timezone=True), nullable=True)
    supporting_doc2_upload = db.Column(db.String(512), nullable=True)

    # Legacy SIMJA / SIKA fields
    simja_number = db.Column(db.String(128), nullable=True)
    simja_date = db.Column(db.DateTime(timezone=True), nullable=True)
    simja_document_upload = db.Column(db.String(512), nullable=True)
    sika_number = db.Column(db.String(128), nullable=True)
    sika_date = db.Column(db.DateTime(timezone=True), nullable=True)
    sika_document_upload = db.Column(db.String(512), nullable=True)

    # Workflow
    review_status = db.Column(db.String(32), nullable=False, default="PENDING_REVIEW", index=True)
    approval_status = db.Column(db.String(32), nullable=False, default="PENDING_APPROVAL", index=True)
    note_for_approver = db.Column(db.Text, nullable=True)
    note_for_vendor = db.Column(db.Text, nullable=True)

    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Permit document
    simlok_number = db.Column(db.String(64), nullable=True, unique=True)
    simlok_date = db.Column(db.DateTime(timezone=True), nullable=True)
    tembusan = db.Column(db.Text, nullable=True)
    signer_name = db.Column(db.String(191), nullable=True)
    signer_position = db.Column(db.String(191), nullable=True)
    content = db.Column(db.Text, nullable=True)

    # Signed gate token (see services/qr_service.py)
    qrcode = db.Column(db.String(255), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("submissions", lazy=True))
    reviewed_by = db.relationship("User", foreign_keys=[reviewed_by_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_id])
    workers = db.relationship(
        "WorkerPhoto",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="WorkerPhoto.id",
        lazy=True,
    )

    @property
    def is_finalized(self) -> bool:
        return self.approval_status != "PENDING_APPROVAL"

    def roster_report(self) -> dict:
        roster_length = len(self.workers)
        return {
            "worker_count": self.worker_count,
            "roster_length": roster_length,
            "mismatch": self.worker_count is not None and self.worker_count != roster_length,
        }

    def to_dict(self, *, include_workers: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "vendor_name": self.vendor_name,
            "vendor_phone": self.vendor_phone,
            "based_on": self.based_on,
            "officer_name": self.officer_name,
            "job_description": self.job_description,
            "work_location": self.work_location,
            "implementation": self.implementation,
            "implementation_start_date": to_utc_z(self.implementation_start_date),
            "implementation_end_date": to_utc_z(self.implementation_end_date),
            "working_hours": self.working_hours,
            "holiday_working_hours": self.holiday_working_hours,
            "other_notes": self.other_notes,
            "work_facilities": self.work_facilities,
            "worker_names": self.worker_names,
            "worker_count": self.worker_count,
            "supporting_doc1_type": self.supporting_doc1_type,
            "supporting_doc1_number": self.supporting_doc1_number,
            "supporting_doc1_date": to_utc_z(self.supporting_doc1_date),
            "supporting_doc1_upload": self.supporting_doc1_upload,
            "supporting_doc2_type": self.supporting_doc2_type,
            "supporting_doc2_number": self.supporting_doc2_number,
            "supporting_doc2_date": to_utc_z(self.supporting_doc2_date),
            "supporting_doc2_upload": self.supporting_doc2_upload,
            "simja_number": self.simja_number,
            "simja_date": to_utc_z(self.simja_date),
            "simja_document_upload": self.simja_document_upload,
            "sika_number": self.sika_number,
            "sika_date": to_utc_z(self.sika_date),
            "sika_document_upload": self.sika_document_upload,
            "review_status": self.review_status,
            "approval_status": self.approval_status,
            "final_status": self.approval_status,
            "note_for_approver": self.note_for_approver,
            "note_for_vendor": self.note_for_vendor,
            "reviewed_by_id": self.reviewed_by_id,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "approved_by_id": self.approved_by_id,
            "approved_at": to_utc_z(self.approved_at),
            "simlok_number": self.simlok_number,
            "simlok_date": to_utc_z(self.simlok_date),
            "tembusan": self.tembusan,
            "signer_name": self.signer_name,
            "signer_position": self.signer_position,
            "content": self.content,
            "qrcode": self.qrcode,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "user": self.user.to_summary() if self.user else None,
        }
        if include_workers:
            data["workers"] = [w.to_dict() for w in self.workers]
            data["roster"] = self.roster_report()
        return data


class WorkerPhoto(db.Model):
    """
    One worker on a submission's roster.

    The submission's worker_count is stored separately and is not kept in
    sync with the roster length; see Submission.roster_report().
    """
    __tablename__ = "worker_photos"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(
        db.Integer,
        db.ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    worker_name = db.Column(db.String(191), nullable=False)
    worker_photo = db.Column(db.String(512), nullable=True)

    # Optional HSSE pass
    hsse_pass_number = db.Column(db.String(128), nullable=True)
    hsse_pass_valid_thru = db.Column(db.DateTime(timezone=True), nullable=True)
    hsse_pass_document_upload = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    submission = db.relationship("Submission", back_populates="workers")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "worker_name": self.worker_name,
            "worker_photo": self.worker_photo,
            "hsse_pass_number": self.hsse_pass_number,
            "hsse_pass_valid_thru": to_utc_z(self.hsse_pass_valid_thru),
            "hsse_pass_document_upload": self.hsse_pass_document_upload,
            "created_at": to_utc_z(self.created_at),
        }


class QrScan(db.Model):
    """
    Gate scan event for an approved submission.

    IMMUTABLE: Append-only. Scanning the same permit again adds another row.
    """
    __tablename__ = "qr_scans"
    __table_args__ = (
        db.Index("ix_qr_scans_submission_scanned", "submission_id", "scanned_at"),
        db.Index("ix_qr_scans_scanner_scanned", "scanned_by_id", "scanned_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey("submissions.id"), nullable=False, index=True)
    scanned_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    scanner_name = db.Column(db.String(191), nullable=True)
    scan_location = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    scanned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    submission = db.relationship("Submission", backref=db.backref("scans", lazy=True, order_by="QrScan.id"))
    scanned_by = db.relationship("User")

    def to_dict(self, *, include_submission: bool = False) -> dict:
        data = {
            "id": self.id,
            "submission_id": self.submission_id,
            "scanned_by_id": self.scanned_by_id,
            "scanner_name": self.scanner_name,
            "scan_location": self.scan_location,
            "notes": self.notes,
            "scanned_at": to_utc_z(self.scanned_at),
            "scanned_by": self.scanned_by.to_summary() if self.scanned_by else None,
        }
        if include_submission and self.submission is not None:
            data["submission"] = {
                "id": self.submission.id,
                "simlok_number": self.submission.simlok_number,
                "vendor_name": self.submission.vendor_name,
                "job_description": self.submission.job_description,
                "review_status": self.submission.review_status,
                "approval_status": self.submission.approval_status,
            }
        return data


class SimlokSequence(db.Model):
    """
    Atomic per-year permit number sequence.

    WHY: Prevent duplicate permit numbers when approvers finalize concurrently.
    """
    __tablename__ = "simlok_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False, unique=True, index=True)
    last_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "year": self.year,
            "last_number": self.last_number,
            "updated_at": to_utc_z(self.updated_at),
        }
