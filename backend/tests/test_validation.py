"""
Payload validation tests (no HTTP).
"""

from datetime import datetime
from types import SimpleNamespace

import pytest

from simlok.models import Submission
from simlok.validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_submission,
    require_fields,
    validate_payload,
    MAX_WORKER_COUNT,
)


POLICY = ModelValidationPolicy(
    writable_fields={"vendor_name", "work_location", "worker_count", "implementation_start_date", "vendor_phone"},
    required_on_create=("vendor_name",),
)


class TestValidatePayload:
    def test_strips_and_coerces(self):
        patch = validate_payload(
            model=Submission,
            payload={
                "vendor_name": "  PT Acme  ",
                "worker_count": "12",
                "implementation_start_date": "2024-05-01T08:00:00+07:00",
            },
            policy=POLICY,
            partial=False,
        )
        assert patch == {
            "vendor_name": "PT Acme",
            "worker_count": 12,
            "implementation_start_date": datetime(2024, 5, 1, 1, 0, 0),
        }

    @pytest.mark.parametrize("value", ["1.5", "1e3", True, 2.0, "abc"])
    def test_integer_is_strict(self, value):
        with pytest.raises(ValidationError) as exc:
            validate_payload(model=Submission, payload={"worker_count": value}, policy=POLICY, partial=True)
        assert exc.value.field == "worker_count"

    def test_rejects_fields_outside_policy(self):
        with pytest.raises(ValidationError, match="Field not allowed: simlok_number"):
            validate_payload(model=Submission, payload={"simlok_number": "X"}, policy=POLICY, partial=True)

    def test_null_in_required_column(self):
        with pytest.raises(ValidationError, match="vendor_name cannot be null"):
            validate_payload(model=Submission, payload={"vendor_name": None}, policy=POLICY, partial=True)

    def test_null_allowed_in_optional_column(self):
        patch = validate_payload(model=Submission, payload={"vendor_phone": None}, policy=POLICY, partial=True)
        assert patch == {"vendor_phone": None}

    def test_max_length(self):
        with pytest.raises(ValidationError, match="exceeds max length 32"):
            validate_payload(model=Submission, payload={"vendor_phone": "9" * 33}, policy=POLICY, partial=True)

    def test_bad_date(self):
        with pytest.raises(ValidationError) as exc:
            validate_payload(
                model=Submission,
                payload={"implementation_start_date": "besok"},
                policy=POLICY,
                partial=True,
            )
        assert exc.value.to_dict() == {
            "error": "implementation_start_date must be an ISO-8601 date",
            "field": "implementation_start_date",
        }

    def test_partial_skips_required(self):
        assert validate_payload(model=Submission, payload={}, policy=POLICY, partial=True) == {}

    def test_non_dict_payload(self):
        with pytest.raises(ValidationError):
            validate_payload(model=Submission, payload=["x"], policy=POLICY, partial=True)


class TestRequireFields:
    def test_label_message(self):
        with pytest.raises(ValidationError, match="Field wajib: Lokasi Kerja harus diisi"):
            require_fields({"work_location": ""}, ("work_location",), {"work_location": "Lokasi Kerja"})

    def test_plain_message_without_label(self):
        with pytest.raises(ValidationError, match="tembusan is required"):
            require_fields({}, ("tembusan",))


class TestSubmissionRules:
    def test_worker_count_bounds(self):
        enforce_rules_submission({"worker_count": 0})
        enforce_rules_submission({"worker_count": MAX_WORKER_COUNT})
        with pytest.raises(ValidationError):
            enforce_rules_submission({"worker_count": -1})
        with pytest.raises(ValidationError):
            enforce_rules_submission({"worker_count": MAX_WORKER_COUNT + 1})

    def test_same_day_window_allowed(self):
        day = datetime(2024, 5, 1)
        enforce_rules_submission({"implementation_start_date": day, "implementation_end_date": day})

    def test_partial_window_checked_against_current(self):
        current = SimpleNamespace(
            implementation_start_date=datetime(2024, 5, 10),
            implementation_end_date=datetime(2024, 5, 20),
        )
        enforce_rules_submission({"implementation_end_date": datetime(2024, 5, 15)}, current=current)
        with pytest.raises(ValidationError):
            enforce_rules_submission({"implementation_end_date": datetime(2024, 5, 1)}, current=current)

    def test_clearing_one_end_is_allowed(self):
        current = SimpleNamespace(
            implementation_start_date=datetime(2024, 5, 10),
            implementation_end_date=datetime(2024, 5, 20),
        )
        enforce_rules_submission({"implementation_start_date": None}, current=current)
