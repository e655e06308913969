# Overview: Flask API routes for submission operations; parses input and returns JSON responses.

"""
Submission routes.

SECURITY: All routes require authentication. Role reach is expressed as
permission codes (see permissions/roles.py):
- VIEW_SUBMISSIONS lists and opens (vendors: own only)
- CREATE_SUBMISSION / EDIT_OWN_SUBMISSION / DELETE_OWN_SUBMISSION /
  MANAGE_OWN_WORKERS are the vendor path, limited to the vendor's own rows
- EDIT_SUBMISSION / REVIEW_SUBMISSION / FINALIZE_SUBMISSION / MANAGE_WORKERS /
  DELETE_SUBMISSION are the staff path

Every write on a submission goes through lifecycle_service, which refuses
it once the submission is approved or rejected.
"""

from flask import Blueprint, Response, current_app, g, jsonify, request, send_file
from io import BytesIO

from ..decorators import require_auth, require_permission, require_any_permission
from ..models import Submission, WorkerPhoto, REVIEW_STATUSES, APPROVAL_STATUSES
from ..services import (
    lifecycle_service,
    pdf_service,
    permission_service,
    qr_service,
    reporting_service,
    sequence_service,
    submission_service,
    worker_service,
)
from ..services.lifecycle_service import LifecycleError, REVIEW_EDITABLE_FIELDS
from ..services.submission_service import SubmissionAccessError, SubmissionNotFoundError
from ..services.worker_service import WorkerNotFoundError
from ..time_utils import parse_iso_datetime
from ..validation import (
    ModelValidationPolicy,
    SUBMISSION_FIELD_LABELS,
    ConflictError,
    ValidationError,
    enforce_rules_submission,
    enforce_rules_worker,
    validate_payload,
)


VENDOR_FIELDS = {
    "vendor_name",
    "vendor_phone",
    "based_on",
    "officer_name",
    "job_description",
    "work_location",
    "implementation",
    "implementation_start_date",
    "implementation_end_date",
    "working_hours",
    "holiday_working_hours",
    "other_notes",
    "work_facilities",
    "worker_names",
    "worker_count",
    "supporting_doc1_type",
    "supporting_doc1_number",
    "supporting_doc1_date",
    "supporting_doc1_upload",
    "supporting_doc2_type",
    "supporting_doc2_number",
    "supporting_doc2_date",
    "supporting_doc2_upload",
    "simja_number",
    "simja_date",
    "simja_document_upload",
    "sika_number",
    "sika_date",
    "sika_document_upload",
}

# Permit template fields staff may fill in before the final decision
TEMPLATE_FIELDS = {"signer_name", "signer_position", "content"}

SUBMISSION_POLICY = ModelValidationPolicy(
    writable_fields=VENDOR_FIELDS,
    required_on_create=tuple(SUBMISSION_FIELD_LABELS),
)

STAFF_EDIT_POLICY = ModelValidationPolicy(writable_fields=VENDOR_FIELDS | TEMPLATE_FIELDS)

REVIEW_POLICY = ModelValidationPolicy(writable_fields=set(REVIEW_EDITABLE_FIELDS))

WORKER_POLICY = ModelValidationPolicy(
    writable_fields={
        "worker_name",
        "worker_photo",
        "hsse_pass_number",
        "hsse_pass_valid_thru",
        "hsse_pass_document_upload",
    },
    required_on_create=("worker_name",),
)

# Body keys of PATCH /review that are not submission columns
REVIEW_CONTROL_KEYS = {"review_status", "note_for_approver", "note_for_vendor"}

MAX_PAGE_SIZE = 100
MAX_EXPORT_ROWS = 5000


submissions_bp = Blueprint("submissions", __name__, url_prefix="/api/submissions")


def _error(e: Exception):
    """Map a domain exception to its JSON error response."""
    if isinstance(e, ValidationError):
        return jsonify(e.to_dict()), 400
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, (SubmissionNotFoundError, WorkerNotFoundError)):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, SubmissionAccessError):
        return jsonify({"error": str(e)}), 403
    return jsonify({"error": str(e)}), 400


DOMAIN_ERRORS = (
    ValidationError,
    ConflictError,
    LifecycleError,
    SubmissionNotFoundError,
    SubmissionAccessError,
    WorkerNotFoundError,
)


def _has(permission_code: str) -> bool:
    return permission_service.user_has_permission(g.current_user, permission_code)


def _page_args() -> tuple[int, int, int]:
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)

    # Clamp
    if page < 1:
        page = 1
    if limit < 1:
        limit = 1
    if limit > MAX_PAGE_SIZE:
        limit = MAX_PAGE_SIZE

    return page, limit, (page - 1) * limit


def _list_filters() -> dict:
    status = request.args.get("status")
    if status and status.strip().upper() not in set(REVIEW_STATUSES) | set(APPROVAL_STATUSES):
        raise ValidationError(f"Invalid status: {status}", field="status")

    review_status = request.args.get("reviewStatus") or request.args.get("review_status")
    if review_status and review_status.strip().upper() not in REVIEW_STATUSES:
        raise ValidationError(f"Invalid reviewStatus: {review_status}", field="reviewStatus")

    final_status = request.args.get("finalStatus") or request.args.get("final_status")
    if final_status and final_status.strip().upper() not in APPROVAL_STATUSES:
        raise ValidationError(f"Invalid finalStatus: {final_status}", field="finalStatus")

    return {
        "status": status,
        "review_status": review_status,
        "final_status": final_status,
        "vendor": request.args.get("vendor"),
        "search": request.args.get("search"),
        "sort_by": request.args.get("sortBy", "created_at"),
        "sort_order": request.args.get("sortOrder", "desc"),
    }


def _validate_workers(raw_workers) -> list[dict]:
    if raw_workers is None:
        return []
    if not isinstance(raw_workers, list):
        raise ValidationError("workers must be a list", field="workers")
    workers = []
    for raw in raw_workers:
        fields = validate_payload(model=WorkerPhoto, payload=raw, policy=WORKER_POLICY, partial=False)
        enforce_rules_worker(fields)
        workers.append(fields)
    return workers


@submissions_bp.get("")
@require_auth
@require_permission("VIEW_SUBMISSIONS")
def list_submissions_route():
    """
    List submissions visible to the caller.

    Query params:
    - page, limit (1..100, default 10)
    - status: overrides the role default scope
    - reviewStatus, finalStatus, vendor, search
    - sortBy (allowlisted column), sortOrder (asc|desc)
    - stats=true: include status counts

    Returns:
        {items: Submission[], count, page, limit, pages, stats?}
    """
    page, limit, offset = _page_args()
    user = g.current_user

    try:
        filters = _list_filters()
        items, total = submission_service.list_submissions(user, limit=limit, offset=offset, **filters)
    except ValidationError as e:
        return _error(e)

    body = {
        "items": [s.to_dict() for s in items],
        "count": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit,
    }
    if request.args.get("stats", "false").lower() == "true":
        body["stats"] = reporting_service.submission_statistics(user)

    return jsonify(body)


@submissions_bp.post("")
@require_auth
@require_permission("CREATE_SUBMISSION")
def create_submission_route():
    """
    Create a submission (vendor).

    Body: vendor fields plus an optional `workers` list of
    {worker_name, worker_photo?, hsse_pass_number?, hsse_pass_valid_thru?, hsse_pass_document_upload?}.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    payload = dict(payload)
    raw_workers = payload.pop("workers", None)

    try:
        fields = validate_payload(
            model=Submission,
            payload=payload,
            policy=SUBMISSION_POLICY,
            partial=False,
            labels=SUBMISSION_FIELD_LABELS,
        )
        enforce_rules_submission(fields)
        workers = _validate_workers(raw_workers)
    except ValidationError as e:
        return _error(e)

    try:
        submission = submission_service.create_submission(user=g.current_user, fields=fields, workers=workers)
    except Exception:
        current_app.logger.exception("Failed to create submission")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Submission %s created by user %s", submission.id, g.current_user.id)
    return jsonify({
        "submission": submission.to_dict(include_workers=True),
        "message": "Submission created successfully",
    }), 201


@submissions_bp.get("/stats")
@require_auth
@require_permission("VIEW_SUBMISSIONS")
def submission_stats_route():
    return jsonify(reporting_service.submission_statistics(g.current_user))


@submissions_bp.get("/export")
@require_auth
@require_permission("EXPORT_SUBMISSIONS")
def export_submissions_route():
    """Download the filtered listing as .xlsx (same filters as the list)."""
    try:
        filters = _list_filters()
    except ValidationError as e:
        return _error(e)

    try:
        items, _ = submission_service.list_submissions(
            g.current_user, limit=MAX_EXPORT_ROWS, offset=0, **filters
        )
        content = reporting_service.export_submissions_xlsx(items)
    except Exception:
        current_app.logger.exception("Failed to export submissions")
        return jsonify({"error": "Internal server error"}), 500

    return send_file(
        BytesIO(content),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=reporting_service.export_filename(),
    )


@submissions_bp.get("/next-number")
@require_auth
@require_permission("FINALIZE_SUBMISSION")
def next_number_route():
    """Preview the next permit number for a year (default: current); nothing is reserved."""
    year = request.args.get("year", type=int)
    return jsonify({"simlok_number": sequence_service.preview_next_simlok_number(year)})


@submissions_bp.get("/<int:submission_id>")
@require_auth
@require_permission("VIEW_SUBMISSIONS")
def get_submission_route(submission_id: int):
    """
    Submission detail, or the permit PDF with ?format=pdf.

    Unapproved submissions render with a [DRAFT] number.
    """
    try:
        submission = submission_service.get_submission_for(submission_id, g.current_user)
    except DOMAIN_ERRORS as e:
        return _error(e)

    if request.args.get("format", "").lower() == "pdf":
        try:
            pdf_bytes = pdf_service.render_submission_pdf(submission)
        except Exception:
            current_app.logger.exception("Failed to render PDF for submission %s", submission_id)
            return jsonify({"error": "Internal server error"}), 500

        return Response(
            pdf_bytes,
            mimetype="application/pdf",
            headers={
                "Content-Disposition": f'inline; filename="{pdf_service.pdf_filename(submission)}"',
                "Cache-Control": "no-store",
            },
        )

    return jsonify({"submission": submission.to_dict(include_workers=True)})


@submissions_bp.route("/<int:submission_id>", methods=["PUT", "PATCH"])
@require_auth
@require_any_permission("EDIT_SUBMISSION", "EDIT_OWN_SUBMISSION")
def update_submission_route(submission_id: int):
    """
    Edit a pending submission.

    Staff (EDIT_SUBMISSION) may edit vendor and permit template fields.
    Vendors may edit vendor fields of their own submission until it is reviewed.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    own_only = not _has("EDIT_SUBMISSION")
    policy = SUBMISSION_POLICY if own_only else STAFF_EDIT_POLICY

    try:
        current = submission_service.get_submission(submission_id)
        patch = validate_payload(model=Submission, payload=payload, policy=policy, partial=True)
        enforce_rules_submission(patch, current=current)
        submission = lifecycle_service.edit_submission(
            submission_id, actor=g.current_user, patch=patch, own_only=own_only
        )
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "submission": submission.to_dict(include_workers=True),
        "message": "Submission updated successfully",
    })


@submissions_bp.delete("/<int:submission_id>")
@require_auth
@require_any_permission("DELETE_SUBMISSION", "DELETE_OWN_SUBMISSION")
def delete_submission_route(submission_id: int):
    own_only = not _has("DELETE_SUBMISSION")
    try:
        lifecycle_service.delete_submission(submission_id, actor=g.current_user, own_only=own_only)
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to delete submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True, "message": "Submission deleted successfully"})


@submissions_bp.patch("/<int:submission_id>/review")
@require_auth
@require_permission("REVIEW_SUBMISSION")
def review_submission_route(submission_id: int):
    """
    Record the review verdict.

    Body:
    {
        "review_status": "MEETS_REQUIREMENTS" | "NOT_MEETS_REQUIREMENTS",
        "note_for_approver": "...",   // required
        "note_for_vendor": "...",     // required
        ...optional schedule/template fields (working_hours, content, signer_name, ...)
    }
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    extra = {k: v for k, v in payload.items() if k not in REVIEW_CONTROL_KEYS}

    try:
        extra_fields = validate_payload(model=Submission, payload=extra, policy=REVIEW_POLICY, partial=True)
        if extra_fields:
            current = submission_service.get_submission(submission_id)
            enforce_rules_submission(extra_fields, current=current)
        submission = lifecycle_service.submit_review(
            submission_id,
            reviewer=g.current_user,
            verdict=(payload.get("review_status") or "").strip().upper(),
            note_for_approver=payload.get("note_for_approver"),
            note_for_vendor=payload.get("note_for_vendor"),
            extra_fields=extra_fields,
        )
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to review submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "submission": submission.to_dict(include_workers=True),
        "message": "Review saved",
    })


@submissions_bp.patch("/<int:submission_id>/final")
@require_auth
@require_permission("FINALIZE_SUBMISSION")
def finalize_submission_route(submission_id: int):
    """
    Issue the final decision.

    Body:
    {
        "final_status": "APPROVED" | "REJECTED",   // "approval_status" also accepted
        "simlok_number": "...",                    // required for APPROVED unless auto_number
        "auto_number": false,                      // allocate YYYY/NNNN/<suffix>
        "simlok_date": "2024-05-01",               // optional, defaults to now
        "tembusan": "...",                         // required for APPROVED
        "note_for_vendor": "..."                   // optional
    }
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    decision = payload.get("final_status") or payload.get("approval_status") or ""

    try:
        try:
            simlok_date = parse_iso_datetime(payload.get("simlok_date"))
        except (AttributeError, ValueError):
            raise ValidationError("simlok_date must be an ISO-8601 date", field="simlok_date")

        auto_number = payload.get("auto_number", False)
        if not isinstance(auto_number, bool):
            raise ValidationError("auto_number must be true or false", field="auto_number")

        submission = lifecycle_service.finalize(
            submission_id,
            approver=g.current_user,
            decision=str(decision).strip().upper(),
            simlok_number=payload.get("simlok_number"),
            simlok_date=simlok_date,
            tembusan=payload.get("tembusan"),
            note_for_vendor=payload.get("note_for_vendor"),
            auto_number=auto_number,
        )
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to finalize submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "submission": submission.to_dict(include_workers=True),
        "message": f"Submission {submission.approval_status.lower()}",
    })


@submissions_bp.patch("/<int:submission_id>/resubmit")
@require_auth
@require_permission("EDIT_OWN_SUBMISSION")
def resubmit_submission_route(submission_id: int):
    """
    Vendor sends a NOT_MEETS_REQUIREMENTS submission back for review.

    Clears the previous verdict and notes; the submission is PENDING_REVIEW
    (and editable by the vendor) again.
    """
    try:
        submission = lifecycle_service.resubmit(submission_id, actor=g.current_user)
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to resubmit submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "submission": submission.to_dict(include_workers=True),
        "message": "Submission berhasil dikirim ulang dan menunggu review",
    })


@submissions_bp.post("/<int:submission_id>/workers")
@require_auth
@require_any_permission("MANAGE_WORKERS", "MANAGE_OWN_WORKERS")
def add_worker_route(submission_id: int):
    payload = request.get_json(silent=True)
    own_only = not _has("MANAGE_WORKERS")

    try:
        fields = validate_payload(model=WorkerPhoto, payload=payload, policy=WORKER_POLICY, partial=False)
        enforce_rules_worker(fields)
        worker = worker_service.add_worker(
            submission_id, actor=g.current_user, fields=fields, own_only=own_only
        )
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to add worker to submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"worker": worker.to_dict()}), 201


@submissions_bp.put("/<int:submission_id>/workers")
@require_auth
@require_permission("MANAGE_WORKERS")
def replace_workers_route(submission_id: int):
    """
    Replace the whole roster.

    Body: {"workers": [...], "worker_count": int?}. Without worker_count the
    count follows the new roster length.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        workers = _validate_workers(payload.get("workers"))
        worker_count = None
        if payload.get("worker_count") is not None:
            counted = validate_payload(
                model=Submission,
                payload={"worker_count": payload["worker_count"]},
                policy=SUBMISSION_POLICY,
                partial=True,
            )
            enforce_rules_submission(counted)
            worker_count = counted["worker_count"]

        submission = worker_service.replace_roster(
            submission_id, actor=g.current_user, workers=workers, worker_count=worker_count
        )
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to replace roster of submission %s", submission_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"submission": submission.to_dict(include_workers=True)})


@submissions_bp.delete("/<int:submission_id>/workers/<int:worker_id>")
@require_auth
@require_any_permission("MANAGE_WORKERS", "MANAGE_OWN_WORKERS")
def remove_worker_route(submission_id: int, worker_id: int):
    own_only = not _has("MANAGE_WORKERS")
    try:
        worker_service.remove_worker(submission_id, worker_id, actor=g.current_user, own_only=own_only)
    except DOMAIN_ERRORS as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to remove worker %s", worker_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True, "message": "Worker removed"})


@submissions_bp.get("/<int:submission_id>/scans")
@require_auth
@require_permission("VIEW_SCAN_HISTORY")
def list_submission_scans_route(submission_id: int):
    try:
        scans = qr_service.list_scans(submission_id)
    except DOMAIN_ERRORS as e:
        return _error(e)

    return jsonify({"items": [s.to_dict() for s in scans], "count": len(scans)})
