"""
Permit PDF and spreadsheet export tests.
"""

from io import BytesIO

from openpyxl import load_workbook
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from simlok.services import pdf_service, reporting_service


class TestPermitPdf:
    def test_draft_number_before_approval(self, submission):
        assert pdf_service.display_number(submission) == "[DRAFT]"
        assert pdf_service.pdf_filename(submission) == "SIMLOK__DRAFT_.pdf"

    def test_filename_after_approval(self, db_session, approved_submission):
        approved_submission.simlok_number = "2024/0001/SMKT/OPR"
        db_session.commit()
        assert pdf_service.pdf_filename(approved_submission) == "SIMLOK_2024_0001_SMKT_OPR.pdf"

    def test_render_returns_pdf_bytes(self, approved_submission):
        data = pdf_service.render_submission_pdf(approved_submission)
        assert data.startswith(b"%PDF")

    def test_long_content_renders(self, db_session, submission):
        submission.content = "Ketentuan keselamatan kerja wajib dipatuhi. " * 400
        submission.supporting_doc1_type = "SIMJA"
        submission.supporting_doc1_number = "SJ-01"
        db_session.commit()

        assert pdf_service.render_submission_pdf(submission).startswith(b"%PDF")

    def test_writer_starts_new_pages(self):
        c = canvas.Canvas(BytesIO(), pagesize=A4)
        w = pdf_service._Writer(c)
        for i in range(100):
            w.text(f"Baris {i}")
        assert c.getPageNumber() > 1

    def test_pdf_endpoint(self, client, headers, approved_submission):
        resp = client.get(f"/api/submissions/{approved_submission.id}?format=pdf", headers=headers["vendor"])
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.headers["Cache-Control"] == "no-store"
        assert resp.headers["Content-Disposition"] == 'inline; filename="SIMLOK_SIMLOK_001_2024.pdf"'
        assert resp.data.startswith(b"%PDF")

    def test_pdf_endpoint_respects_ownership(self, client, headers, approved_submission):
        resp = client.get(f"/api/submissions/{approved_submission.id}?format=pdf", headers=headers["other_vendor"])
        assert resp.status_code == 403


class TestExport:
    def test_workbook_rows(self, approved_submission):
        content = reporting_service.export_submissions_xlsx([approved_submission])
        ws = load_workbook(BytesIO(content)).active

        header = [c.value for c in ws[1]]
        assert header == [h for h, _ in reporting_service.EXPORT_COLUMNS]

        row = [c.value for c in ws[2]]
        assert row[0] == 1
        assert row[1] == "SIMLOK/001/2024"
        assert row[header.index("Status Akhir")] == "APPROVED"

    def test_export_endpoint(self, client, headers, submission):
        resp = client.get("/api/submissions/export", headers=headers["reviewer"])
        assert resp.status_code == 200
        assert resp.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        assert "attachment" in resp.headers["Content-Disposition"]

        ws = load_workbook(BytesIO(resp.data)).active
        assert ws.max_row == 2
