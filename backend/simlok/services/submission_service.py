# Overview: Service-layer operations for submissions; create, read, role-scoped listing.

from __future__ import annotations

from ..extensions import db
from ..models import Submission, WorkerPhoto, User
from simlok.time_utils import utcnow


# Columns clients may sort the listing by
SORTABLE_COLUMNS = {
    "id": Submission.id,
    "created_at": Submission.created_at,
    "updated_at": Submission.updated_at,
    "vendor_name": Submission.vendor_name,
    "job_description": Submission.job_description,
    "work_location": Submission.work_location,
    "review_status": Submission.review_status,
    "approval_status": Submission.approval_status,
    "simlok_number": Submission.simlok_number,
    "simlok_date": Submission.simlok_date,
    "implementation_start_date": Submission.implementation_start_date,
}

# Roles that only ever see their own submissions
OWN_SCOPE_ROLES = {"VENDOR"}


class SubmissionNotFoundError(Exception):
    """Submission does not exist (404)."""
    pass


class SubmissionAccessError(Exception):
    """Caller may not touch this submission (403)."""
    pass


def is_own_scope(user: User) -> bool:
    return user.role in OWN_SCOPE_ROLES


def get_submission(submission_id: int) -> Submission:
    submission = db.session.get(Submission, submission_id)
    if submission is None:
        raise SubmissionNotFoundError(f"Submission {submission_id} not found")
    return submission


def ensure_owner(submission: Submission, user: User) -> None:
    if submission.user_id != user.id:
        raise SubmissionAccessError("Access denied: submission belongs to another vendor")


def get_submission_for(submission_id: int, user: User) -> Submission:
    """Fetch a submission the caller is allowed to see (vendors: own only)."""
    submission = get_submission(submission_id)
    if is_own_scope(user):
        ensure_owner(submission, user)
    return submission


def create_submission(*, user: User, fields: dict, workers: list[dict] | None = None) -> Submission:
    """
    Persist a new submission in PENDING_REVIEW / PENDING_APPROVAL.

    `fields` must already be validated against the submission policy and
    `workers` against the worker policy. The QR token needs the row id, so
    the row is flushed before the token is issued; both land in one commit.
    """
    from . import qr_service

    workers = workers or []

    submission = Submission(
        user_id=user.id,
        review_status="PENDING_REVIEW",
        approval_status="PENDING_APPROVAL",
        created_at=utcnow(),
        **fields,
    )
    if submission.worker_count is None and workers:
        submission.worker_count = len(workers)

    for worker_fields in workers:
        submission.workers.append(WorkerPhoto(created_at=utcnow(), **worker_fields))

    db.session.add(submission)
    db.session.flush()

    submission.qrcode = qr_service.issue_token(submission.id)
    db.session.commit()
    return submission


def _apply_role_scope(query, user: User):
    if is_own_scope(user):
        return query.filter(Submission.user_id == user.id)
    if user.role == "APPROVER":
        return query.filter(Submission.review_status != "PENDING_REVIEW")
    if user.role == "VERIFIER":
        return query.filter(Submission.approval_status == "APPROVED")
    return query


def scoped_query(user: User, *, status: str | None = None):
    """
    Base query for what `user` may list.

    Vendors are always limited to their own rows. For other roles an explicit
    `status` replaces the role's default filter: values that mention REVIEW
    or REQUIREMENTS filter the review status, anything else the approval
    status.
    """
    query = db.session.query(Submission)

    if status:
        if is_own_scope(user):
            query = query.filter(Submission.user_id == user.id)
        status = status.strip().upper()
        if "REVIEW" in status or "REQUIREMENTS" in status:
            query = query.filter(Submission.review_status == status)
        else:
            query = query.filter(Submission.approval_status == status)
        return query

    return _apply_role_scope(query, user)


def list_submissions(
    user: User,
    *,
    status: str | None = None,
    review_status: str | None = None,
    final_status: str | None = None,
    vendor: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Submission], int]:
    """Role-scoped, filtered, sorted page of submissions. Returns (items, total)."""
    query = scoped_query(user, status=status)

    if review_status:
        query = query.filter(Submission.review_status == review_status.strip().upper())
    if final_status:
        query = query.filter(Submission.approval_status == final_status.strip().upper())
    if vendor:
        query = query.filter(Submission.vendor_name.ilike(f"%{vendor.strip()}%"))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                Submission.vendor_name.ilike(term),
                Submission.officer_name.ilike(term),
                Submission.job_description.ilike(term),
                Submission.work_location.ilike(term),
                Submission.simlok_number.ilike(term),
            )
        )

    total = query.count()

    column = SORTABLE_COLUMNS.get(sort_by, Submission.created_at)
    order = column.asc() if (sort_order or "").lower() == "asc" else column.desc()

    items = (
        query.order_by(order, Submission.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return items, total
