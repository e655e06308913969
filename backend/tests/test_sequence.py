"""
Permit number sequence tests.
"""

from simlok.models import SimlokSequence
from simlok.services import sequence_service
from simlok.time_utils import utcnow


class TestSequence:
    def test_consecutive_per_year(self, db_session):
        numbers = [sequence_service.allocate_simlok_number(2024, commit=True) for _ in range(3)]
        assert numbers == ["2024/0001/SMKT/OPR", "2024/0002/SMKT/OPR", "2024/0003/SMKT/OPR"]

        assert sequence_service.allocate_simlok_number(2025, commit=True) == "2025/0001/SMKT/OPR"
        assert db_session.query(SimlokSequence).filter_by(year=2024).one().last_number == 3

    def test_uncommitted_allocation_is_given_back(self, db_session):
        sequence_service.allocate_simlok_number(2024)
        db_session.rollback()
        assert sequence_service.allocate_simlok_number(2024, commit=True) == "2024/0001/SMKT/OPR"

    def test_preview_does_not_reserve(self, db_session):
        assert sequence_service.preview_next_simlok_number(2024) == "2024/0001/SMKT/OPR"
        assert sequence_service.preview_next_simlok_number(2024) == "2024/0001/SMKT/OPR"
        assert db_session.query(SimlokSequence).count() == 0

    def test_format(self, app):
        assert sequence_service.format_simlok_number(2024, 7, suffix="ABC") == "2024/0007/ABC"
        assert sequence_service.format_simlok_number(2024, 12345, suffix="ABC") == "2024/12345/ABC"

    def test_next_number_endpoint(self, client, headers):
        resp = client.get("/api/submissions/next-number", headers=headers["approver"])
        assert resp.status_code == 200
        assert resp.get_json()["simlok_number"] == f"{utcnow().year}/0001/SMKT/OPR"

        resp = client.get("/api/submissions/next-number?year=2030", headers=headers["admin"])
        assert resp.get_json()["simlok_number"] == "2030/0001/SMKT/OPR"

    def test_next_number_needs_finalize_permission(self, client, headers):
        resp = client.get("/api/submissions/next-number", headers=headers["reviewer"])
        assert resp.status_code == 403
