# Overview: Service-layer operations for lifecycle; review, final decision, guarded edits.

"""
SIMLOK Submission Lifecycle Service

================================================================================
PURPOSE: Enforce the review -> final decision lifecycle for permit submissions
================================================================================

STATE MACHINE (two orthogonal fields):

    review_status:   PENDING_REVIEW -> MEETS_REQUIREMENTS | NOT_MEETS_REQUIREMENTS
                     (the verdict may be revised while approval is pending)

    approval_status: PENDING_APPROVAL -> APPROVED | REJECTED   (terminal)

RULES (NON-NEGOTIABLE):
1. A submission is writable only while approval_status == PENDING_APPROVAL
2. The final decision requires a review verdict first
3. APPROVED carries a permit number and permit date; REJECTED carries neither
4. approval_status leaves PENDING_APPROVAL at most once

CONCURRENCY:
Every write here is a single conditional UPDATE guarded on
approval_status = 'PENDING_APPROVAL'. The row count tells us whether we won;
reading the status first and writing later would let a concurrent finalize
slip in between.
================================================================================
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Submission, User
from ..validation import ValidationError, ConflictError
from . import sequence_service
from .concurrency import run_with_retry
from .submission_service import get_submission, ensure_owner
from simlok.time_utils import utcnow


REVIEW_VERDICTS = {"MEETS_REQUIREMENTS", "NOT_MEETS_REQUIREMENTS"}
FINAL_DECISIONS = {"APPROVED", "REJECTED"}

# Schedule / template fields a reviewer may adjust together with the verdict
REVIEW_EDITABLE_FIELDS = {
    "working_hours",
    "holiday_working_hours",
    "implementation",
    "content",
    "implementation_start_date",
    "implementation_end_date",
    "signer_name",
    "signer_position",
}


class LifecycleError(ValueError):
    """
    Raised when an operation is not allowed in the submission's current state.

    This is a domain error, not a technical error.
    """
    pass


def can_edit(submission: Submission) -> bool:
    return submission.approval_status == "PENDING_APPROVAL"


def _pending_guard(submission_id: int):
    return (
        Submission.id == submission_id,
        Submission.approval_status == "PENDING_APPROVAL",
    )


def _not_pending_error() -> LifecycleError:
    return LifecycleError("Cannot edit submission that has been approved or rejected")


def lock_pending(submission_id: int) -> Submission:
    """
    Claim a pending submission for a multi-step write in the current transaction.

    Touches updated_at with the pending guard so the row is write-locked
    until commit; a submission that is already finalized raises
    LifecycleError. The caller commits.
    """
    submission = get_submission(submission_id)
    result = db.session.execute(
        update(Submission)
        .where(*_pending_guard(submission_id))
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.session.rollback()
        raise _not_pending_error()
    return submission


def _required_note(value, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    return text


def submit_review(
    submission_id: int,
    *,
    reviewer: User,
    verdict: str,
    note_for_approver: str | None,
    note_for_vendor: str | None,
    extra_fields: dict | None = None,
) -> Submission:
    """
    Record (or revise) the review verdict.

    Raises:
        SubmissionNotFoundError: unknown id
        ValidationError: bad verdict, missing note, non-reviewable extra field
        LifecycleError: submission already finalized

    Nothing is written unless every check passes.
    """
    submission = get_submission(submission_id)

    if verdict not in REVIEW_VERDICTS:
        raise ValidationError(
            f"Invalid review status '{verdict}'. Must be one of: {', '.join(sorted(REVIEW_VERDICTS))}",
            field="review_status",
        )
    note_for_approver = _required_note(note_for_approver, "note_for_approver")
    note_for_vendor = _required_note(note_for_vendor, "note_for_vendor")

    extra_fields = extra_fields or {}
    for key in extra_fields:
        if key not in REVIEW_EDITABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}", field=key)

    if not can_edit(submission):
        raise LifecycleError("Cannot review submission that has been approved or rejected")

    now = utcnow()
    values = dict(extra_fields)
    values.update(
        review_status=verdict,
        note_for_approver=note_for_approver,
        note_for_vendor=note_for_vendor,
        reviewed_by_id=reviewer.id,
        reviewed_at=now,
        updated_at=now,
    )

    def _op():
        result = db.session.execute(
            update(Submission)
            .where(*_pending_guard(submission_id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            db.session.rollback()
            raise LifecycleError("Cannot review submission that has been approved or rejected")
        db.session.commit()

    run_with_retry(_op)
    db.session.refresh(submission)

    current_app.logger.info(
        "Submission %s reviewed by user %s: %s", submission_id, reviewer.id, verdict
    )
    return submission


def finalize(
    submission_id: int,
    *,
    approver: User,
    decision: str,
    simlok_number: str | None = None,
    simlok_date=None,
    tembusan: str | None = None,
    note_for_vendor: str | None = None,
    auto_number: bool = False,
) -> Submission:
    """
    Issue the final decision (PENDING_APPROVAL -> APPROVED | REJECTED).

    APPROVED needs a permit number (or auto_number=True to draw one from the
    yearly sequence) and a tembusan; the permit date defaults to now.

    Raises:
        SubmissionNotFoundError: unknown id
        ValidationError: bad decision or missing approval data
        LifecycleError: not reviewed yet, or already finalized
        ConflictError: permit number already used
    """
    submission = get_submission(submission_id)

    if decision not in FINAL_DECISIONS:
        raise ValidationError(
            f"Invalid final status '{decision}'. Must be one of: {', '.join(sorted(FINAL_DECISIONS))}",
            field="final_status",
        )

    if not can_edit(submission):
        raise LifecycleError("Submission has already been finalized")

    if submission.review_status == "PENDING_REVIEW":
        raise LifecycleError("Cannot finalize submission that has not been reviewed yet")

    now = utcnow()
    values = {
        "approval_status": decision,
        "approved_by_id": approver.id,
        "approved_at": now,
        "updated_at": now,
    }
    if note_for_vendor is not None and str(note_for_vendor).strip():
        values["note_for_vendor"] = str(note_for_vendor).strip()

    if decision == "APPROVED":
        simlok_number = (simlok_number or "").strip()
        if not simlok_number and not auto_number:
            raise ValidationError("simlok_number is required for approval", field="simlok_number")
        tembusan = (tembusan or "").strip()
        if not tembusan:
            raise ValidationError("tembusan is required for approval", field="tembusan")

        if simlok_number:
            taken = (
                db.session.query(Submission.id)
                .filter(Submission.simlok_number == simlok_number, Submission.id != submission_id)
                .first()
            )
            if taken:
                raise ConflictError(f"SIMLOK number {simlok_number} is already in use")

        values.update(
            simlok_date=simlok_date or now,
            tembusan=tembusan,
        )

    def _op():
        row = dict(values)
        if decision == "APPROVED":
            # Drawn inside the retried unit: a rollback also gives the number back
            row["simlok_number"] = simlok_number or sequence_service.allocate_simlok_number(now.year)
        try:
            result = db.session.execute(
                update(Submission)
                .where(*_pending_guard(submission_id))
                .values(**row)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                db.session.rollback()
                raise LifecycleError("Submission has already been finalized")
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"SIMLOK number {row.get('simlok_number')} is already in use")

    run_with_retry(_op)
    db.session.refresh(submission)

    current_app.logger.info(
        "Submission %s finalized by user %s: %s %s",
        submission_id, approver.id, decision, submission.simlok_number or "",
    )
    return submission


def edit_submission(
    submission_id: int,
    *,
    actor: User,
    patch: dict,
    own_only: bool = False,
) -> Submission:
    """
    Apply a validated field patch to a pending submission.

    own_only=True is the vendor path: the submission must belong to the actor
    and must still be waiting for review.

    Raises:
        SubmissionNotFoundError: unknown id
        SubmissionAccessError: vendor editing another vendor's submission
        LifecycleError: finalized, or (vendor) already reviewed
    """
    submission = get_submission(submission_id)

    if own_only:
        ensure_owner(submission, actor)

    if not can_edit(submission):
        raise _not_pending_error()

    if own_only and submission.review_status != "PENDING_REVIEW":
        raise LifecycleError("Cannot edit submission that has already been reviewed")

    if not patch:
        return submission

    guard = list(_pending_guard(submission_id))
    if own_only:
        guard.append(Submission.review_status == "PENDING_REVIEW")

    values = dict(patch)
    values["updated_at"] = utcnow()

    def _op():
        result = db.session.execute(
            update(Submission)
            .where(*guard)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            db.session.rollback()
            raise LifecycleError("Cannot edit submission that has been approved or rejected")
        db.session.commit()

    run_with_retry(_op)
    db.session.refresh(submission)
    return submission


def resubmit(submission_id: int, *, actor: User) -> Submission:
    """
    Send a submission that failed review back to the review queue.

    Only the owning vendor, only from NOT_MEETS_REQUIREMENTS, and only while
    approval is pending. The previous verdict, reviewer and notes are cleared
    so the next review starts fresh; the vendor can edit again afterwards.

    Raises:
        SubmissionNotFoundError: unknown id
        SubmissionAccessError: another vendor's submission
        LifecycleError: finalized, or not in NOT_MEETS_REQUIREMENTS
    """
    submission = get_submission(submission_id)
    ensure_owner(submission, actor)

    if not can_edit(submission):
        raise _not_pending_error()
    if submission.review_status != "NOT_MEETS_REQUIREMENTS":
        raise LifecycleError("Submission ini tidak dalam status perlu perbaikan")

    def _op():
        result = db.session.execute(
            update(Submission)
            .where(
                *_pending_guard(submission_id),
                Submission.review_status == "NOT_MEETS_REQUIREMENTS",
                Submission.user_id == actor.id,
            )
            .values(
                review_status="PENDING_REVIEW",
                reviewed_by_id=None,
                reviewed_at=None,
                note_for_approver=None,
                note_for_vendor=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            db.session.rollback()
            raise LifecycleError("Submission ini tidak dalam status perlu perbaikan")
        db.session.commit()

    run_with_retry(_op)
    db.session.refresh(submission)

    current_app.logger.info("Submission %s resubmitted by user %s", submission_id, actor.id)
    return submission


def delete_submission(submission_id: int, *, actor: User, own_only: bool = False) -> None:
    """
    Delete a submission together with its roster.

    Vendors (own_only=True) may delete their own submission while it waits
    for review. Staff may delete anything that is not APPROVED; an approved
    permit has a scan trail and stays.
    """
    submission = get_submission(submission_id)

    if own_only:
        ensure_owner(submission, actor)
        if not can_edit(submission) or submission.review_status != "PENDING_REVIEW":
            raise LifecycleError("Only submissions waiting for review can be deleted")
    elif submission.approval_status == "APPROVED":
        raise LifecycleError("Cannot delete an approved submission")

    db.session.delete(submission)
    db.session.commit()

    current_app.logger.info("Submission %s deleted by user %s", submission_id, actor.id)
