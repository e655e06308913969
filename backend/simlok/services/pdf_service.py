# Overview: Service-layer rendering of a submission into a printable SIMLOK PDF.

"""
Permit document rendering.

Read-only projection: nothing here writes to the database. The layout is a
single A4 form (numbered rows with a colon column, free-text clause,
signature block, worker list, tembusan) drawn with reportlab's canvas and
flowing onto extra pages when long.
"""

from __future__ import annotations

import re
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from ..models import Submission
from simlok.time_utils import format_id_date


DRAFT_NUMBER = "[DRAFT]"
ISSUING_CITY = "Jakarta"

MARGIN = 50
BOTTOM_MARGIN = 60
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_SIZE = 11
LINE_GAP = 15
LABEL_WIDTH = 150


def display_number(submission: Submission) -> str:
    """Permit number as printed; drafts get a placeholder."""
    if submission.approval_status == "APPROVED" and submission.simlok_number:
        return submission.simlok_number
    return DRAFT_NUMBER


def pdf_filename(submission: Submission) -> str:
    """Download name, e.g. 2024/0001/SMKT/OPR -> SIMLOK_2024_0001_SMKT_OPR.pdf"""
    safe = re.sub(r"[\[\]/\\]", "_", display_number(submission))
    return f"SIMLOK_{safe}.pdf"


def _inline(value) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


class _Writer:
    """Cursor over a reportlab canvas that starts a new page when it runs out of room."""

    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.width, self.height = A4
        self.y = self.height - MARGIN

    def ensure(self, needed: float) -> None:
        if self.y - needed < BOTTOM_MARGIN:
            self.c.showPage()
            self.y = self.height - MARGIN

    def text(self, value: str, x: float = MARGIN, *, bold: bool = False, size: int = FONT_SIZE) -> None:
        self.ensure(LINE_GAP)
        self.c.setFont(FONT_BOLD if bold else FONT, size)
        self.c.drawString(x, self.y, value)
        self.y -= LINE_GAP

    def center(self, value: str, *, bold: bool = False, size: int = FONT_SIZE) -> None:
        self.ensure(LINE_GAP + 4)
        self.c.setFont(FONT_BOLD if bold else FONT, size)
        self.c.drawCentredString(self.width / 2, self.y, value)
        self.y -= LINE_GAP + 4

    def wrap(self, value: str, x: float = MARGIN, *, bold: bool = False) -> None:
        font = FONT_BOLD if bold else FONT
        for line in simpleSplit(value, font, FONT_SIZE, self.width - MARGIN - x) or [""]:
            self.text(line, x, bold=bold)

    def row(self, number: int | None, label: str, value) -> None:
        """Numbered row: label on the left, colon column, wrapped value on the right."""
        self.ensure(LINE_GAP)
        left = f"{number}. {label}" if number is not None else label
        value_x = MARGIN + LABEL_WIDTH + 10
        self.c.setFont(FONT, FONT_SIZE)
        self.c.drawString(MARGIN, self.y, left)
        self.c.drawString(MARGIN + LABEL_WIDTH, self.y, ":")
        lines = simpleSplit(_inline(value) or "-", FONT, FONT_SIZE, self.width - MARGIN - value_x)
        for index, line in enumerate(lines):
            if index:
                self.ensure(LINE_GAP)
            self.c.drawString(value_x, self.y, line)
            self.y -= LINE_GAP

    def rule(self) -> None:
        self.ensure(10)
        self.c.line(MARGIN, self.y + 5, self.width - MARGIN, self.y + 5)
        self.y -= 10

    def gap(self, amount: float = LINE_GAP) -> None:
        self.y -= amount


def _based_on(submission: Submission) -> str:
    parts = [_inline(submission.based_on)]
    if submission.simja_number:
        parts.append(f"SIMJA {_inline(submission.simja_number)} Tgl. {format_id_date(submission.simja_date)}")
    if submission.sika_number:
        parts.append(f"SIKA {_inline(submission.sika_number)} Tgl. {format_id_date(submission.sika_date)}")
    return "; ".join(p for p in parts if p)


def _schedule(submission: Submission) -> str:
    text = _inline(submission.implementation)
    if submission.implementation_start_date or submission.implementation_end_date:
        window = (
            f"{format_id_date(submission.implementation_start_date)}"
            f" s/d {format_id_date(submission.implementation_end_date)}"
        )
        text = f"{text} ({window})" if text else window
    return text


def _supporting_documents(submission: Submission) -> list[str]:
    docs = []
    for slot in (1, 2):
        doc_type = getattr(submission, f"supporting_doc{slot}_type")
        doc_number = getattr(submission, f"supporting_doc{slot}_number")
        if not (doc_type or doc_number):
            continue
        doc_date = getattr(submission, f"supporting_doc{slot}_date")
        docs.append(f"{_inline(doc_type) or 'Dokumen'} {_inline(doc_number)} Tgl. {format_id_date(doc_date)}")
    return docs


def render_submission_pdf(submission: Submission) -> bytes:
    """Render the permit document for `submission` to PDF bytes."""
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"SIMLOK {display_number(submission)}")
    w = _Writer(c)

    # Header
    w.gap(30)
    w.center("SURAT IZIN MASUK LOKASI", bold=True, size=16)
    w.center(f"SIMLOK NO-{display_number(submission)}", size=13)
    w.rule()
    w.gap(5)
    w.wrap("Dengan ini diberikan izin memasuki lokasi kepada:")
    w.gap(5)

    # Vendor and job details
    w.row(1, "Nama", submission.vendor_name)
    w.row(2, "Berdasarkan", _based_on(submission))
    w.row(3, "Pekerjaan", submission.job_description)
    w.row(4, "Lokasi Kerja", submission.work_location)
    w.row(5, "Pelaksanaan", _schedule(submission))
    w.row(6, "Jam Kerja", submission.working_hours)
    if submission.holiday_working_hours:
        w.row(None, "   Hari Libur", submission.holiday_working_hours)
    w.row(7, "Lain-lain", submission.other_notes)
    w.row(8, "Sarana Kerja", submission.work_facilities)
    w.row(9, "Petugas", f"{_inline(submission.officer_name)} {_inline(submission.vendor_phone)}".strip())

    docs = _supporting_documents(submission)
    if docs:
        w.gap(5)
        w.text("Dokumen Pendukung:", bold=True)
        for doc in docs:
            w.wrap(f"- {doc}", MARGIN + 15)

    if submission.content and submission.content.strip():
        w.gap(10)
        w.wrap(_inline(submission.content))

    # Signature block
    w.gap(20)
    w.ensure(LINE_GAP * 7)
    sign_x = w.width - 230
    w.text(f"Dikeluarkan di : {ISSUING_CITY}", sign_x)
    w.text(f"Pada tanggal : {format_id_date(submission.simlok_date, long=True)}", sign_x)
    w.gap(10)
    w.text(submission.signer_position or "[Jabatan Penandatangan]", sign_x)
    w.gap(40)
    w.text(submission.signer_name or "[Nama Penandatangan]", sign_x, bold=True)

    # Worker list
    w.gap(10)
    w.text("Nama pekerja:", bold=True)
    if submission.workers:
        for index, worker in enumerate(submission.workers, start=1):
            line = f"{index}. {_inline(worker.worker_name)}"
            if worker.hsse_pass_number:
                line += f" (HSSE Pass {_inline(worker.hsse_pass_number)}"
                if worker.hsse_pass_valid_thru:
                    line += f", s/d {format_id_date(worker.hsse_pass_valid_thru)}"
                line += ")"
            w.wrap(line, MARGIN + 15)
    else:
        names = [n.strip() for n in (submission.worker_names or "").splitlines() if n.strip()]
        for index, name in enumerate(names, start=1):
            w.wrap(f"{index}. {name}", MARGIN + 15)

    # Distribution list
    if submission.tembusan and submission.tembusan.strip():
        w.gap(10)
        w.text("Tembusan:", bold=True)
        for line in submission.tembusan.splitlines():
            if line.strip():
                w.wrap(line.strip(), MARGIN + 15)

    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.read()
