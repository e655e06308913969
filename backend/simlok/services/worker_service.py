# Overview: Service-layer operations for the worker roster of a submission.

"""
Worker Roster Service

Roster rows belong to exactly one submission and can change only while the
submission is pending approval. Each operation runs in one transaction
opened by lifecycle_service.lock_pending(), so a concurrent final decision
cannot land between the state check and the roster write.

worker_count on the submission is a separate vendor-declared number. Adding
or removing single workers leaves it alone; Submission.roster_report() shows
any mismatch.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Submission, WorkerPhoto, User
from .lifecycle_service import LifecycleError, lock_pending
from .submission_service import SubmissionAccessError, ensure_owner
from simlok.time_utils import utcnow


class WorkerNotFoundError(Exception):
    """Worker row does not exist (404)."""
    pass


def _claim(submission_id: int, actor: User, own_only: bool) -> Submission:
    submission = lock_pending(submission_id)
    if own_only:
        try:
            ensure_owner(submission, actor)
        except SubmissionAccessError:
            db.session.rollback()
            raise
        # Vendors change content only before a reviewer has acted
        if submission.review_status != "PENDING_REVIEW":
            db.session.rollback()
            raise LifecycleError("Cannot change workers of a submission that has already been reviewed")
    return submission


def add_worker(
    submission_id: int,
    *,
    actor: User,
    fields: dict,
    own_only: bool = False,
) -> WorkerPhoto:
    """Append one validated worker to a pending submission's roster."""
    _claim(submission_id, actor, own_only)

    worker = WorkerPhoto(submission_id=submission_id, created_at=utcnow(), **fields)
    db.session.add(worker)
    db.session.commit()
    return worker


def remove_worker(
    submission_id: int,
    worker_id: int,
    *,
    actor: User,
    own_only: bool = False,
) -> WorkerPhoto:
    """
    Delete exactly one roster row.

    Raises:
        WorkerNotFoundError: no such worker (404)
        LifecycleError: worker belongs to another submission, it is the last
            worker on the roster, or the submission is finalized (400)
    """
    worker = db.session.get(WorkerPhoto, worker_id)
    if worker is None:
        raise WorkerNotFoundError(f"Worker {worker_id} not found")
    if worker.submission_id != submission_id:
        raise LifecycleError("Worker does not belong to this submission")

    _claim(submission_id, actor, own_only)

    remaining = (
        db.session.query(db.func.count(WorkerPhoto.id))
        .filter(WorkerPhoto.submission_id == submission_id)
        .scalar()
    )
    if remaining <= 1:
        db.session.rollback()
        raise LifecycleError("Cannot remove the last worker from a submission")

    db.session.delete(worker)
    db.session.commit()
    return worker


def replace_roster(
    submission_id: int,
    *,
    actor: User,
    workers: list[dict],
    worker_count: int | None = None,
) -> Submission:
    """
    Replace the whole roster in one transaction.

    worker_count follows the new roster length unless the caller sends an
    explicit count.
    """
    submission = _claim(submission_id, actor, own_only=False)

    submission.workers.clear()
    db.session.flush()
    now = utcnow()
    for worker_fields in workers:
        submission.workers.append(WorkerPhoto(created_at=now, **worker_fields))

    submission.worker_count = worker_count if worker_count is not None else len(workers)
    db.session.commit()
    return submission
