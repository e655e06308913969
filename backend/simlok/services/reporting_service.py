# Overview: Service-layer operations for reporting; dashboard counts and spreadsheet export.

from __future__ import annotations

from io import BytesIO

from sqlalchemy import func

from ..models import Submission, QrScan, User, REVIEW_STATUSES, APPROVAL_STATUSES
from .submission_service import scoped_query
from simlok.time_utils import format_id_date, utcnow


EXPORT_COLUMNS = [
    ("No", None),
    ("Nomor SIMLOK", "simlok_number"),
    ("Tanggal SIMLOK", "simlok_date"),
    ("Nama Vendor", "vendor_name"),
    ("Nama Petugas", "officer_name"),
    ("Pekerjaan", "job_description"),
    ("Lokasi Kerja", "work_location"),
    ("Pelaksanaan", "implementation"),
    ("Tanggal Mulai", "implementation_start_date"),
    ("Tanggal Selesai", "implementation_end_date"),
    ("Jam Kerja", "working_hours"),
    ("Jumlah Pekerja", "worker_count"),
    ("Status Review", "review_status"),
    ("Status Akhir", "approval_status"),
    ("Dibuat", "created_at"),
]

DATE_FIELDS = {
    "simlok_date",
    "implementation_start_date",
    "implementation_end_date",
    "created_at",
}


def submission_statistics(user: User) -> dict:
    """
    Status counts over what `user` may list.

    `pending`/`approved`/`rejected` mirror the approval status; the
    `review` block breaks the same rows down by review verdict.
    """
    approval_counts = dict(
        scoped_query(user)
        .with_entities(Submission.approval_status, func.count(Submission.id))
        .group_by(Submission.approval_status)
        .all()
    )
    review_counts = dict(
        scoped_query(user)
        .with_entities(Submission.review_status, func.count(Submission.id))
        .group_by(Submission.review_status)
        .all()
    )
    total_scans = (
        scoped_query(user)
        .join(QrScan, QrScan.submission_id == Submission.id)
        .with_entities(func.count(QrScan.id))
        .scalar()
    )

    return {
        "total": sum(approval_counts.values()),
        "pending": approval_counts.get("PENDING_APPROVAL", 0),
        "approved": approval_counts.get("APPROVED", 0),
        "rejected": approval_counts.get("REJECTED", 0),
        "approval": {status: approval_counts.get(status, 0) for status in APPROVAL_STATUSES},
        "review": {status: review_counts.get(status, 0) for status in REVIEW_STATUSES},
        "total_scans": total_scans or 0,
    }


def _cell_value(submission: Submission, field: str):
    value = getattr(submission, field)
    if field in DATE_FIELDS:
        return format_id_date(value) if value else ""
    return value if value is not None else ""


def export_submissions_xlsx(submissions: list[Submission]) -> bytes:
    """Write the given submissions to a single-sheet .xlsx workbook."""
    from openpyxl import Workbook
    from openpyxl.styles import Font

    wb = Workbook()
    ws = wb.active
    ws.title = "SIMLOK"

    ws.append([header for header, _ in EXPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for index, submission in enumerate(submissions, start=1):
        row = [index]
        for _, field in EXPORT_COLUMNS[1:]:
            row.append(_cell_value(submission, field))
        ws.append(row)

    for column_cells in ws.columns:
        width = max(len(str(cell.value or "")) for cell in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = min(max(width + 2, 8), 50)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer.read()


def export_filename() -> str:
    return f"simlok_submissions_{utcnow().strftime('%Y%m%d_%H%M%S')}.xlsx"
