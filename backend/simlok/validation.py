from __future__ import annotations
from datetime import datetime
from simlok.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Upper bound for a single permit's worker count
MAX_WORKER_COUNT = 10_000

# Indonesian labels used in vendor-facing "required field" messages
SUBMISSION_FIELD_LABELS = {
    "vendor_name": "Nama Vendor",
    "based_on": "Berdasarkan",
    "officer_name": "Nama Petugas",
    "job_description": "Deskripsi Pekerjaan",
    "work_location": "Lokasi Kerja",
    "working_hours": "Jam Kerja",
    "work_facilities": "Sarana Kerja",
    "worker_names": "Daftar Pekerja",
}


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.field:
            body["field"] = self.field
        return body


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate permit number)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST (must be present and non-blank)
    """
    writable_fields: set[str]
    required_on_create: tuple[str, ...] = ()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer", field=col.key)
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be a plain integer", field=col.key)
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer", field=col.key)
        raise ValidationError(f"{col.key} must be an integer", field=col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date", field=col.key)
            return dt
        raise ValidationError(f"{col.key} must be a date", field=col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def require_fields(payload: dict, fields, labels: dict | None = None) -> None:
    """
    Reject the first missing or blank field, naming it.

    Messages use the Indonesian label when one is known, matching what the
    vendor sees on the submission form.
    """
    labels = labels or {}
    for field in fields:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            label = labels.get(field)
            message = f"Field wajib: {label} harus diisi" if label else f"{field} is required"
            raise ValidationError(message, field=field)


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
    labels: dict | None = None,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        require_fields(payload, policy.required_on_create, labels)

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", field=k)
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", field=k)

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", field=k)
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", field=k)

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", field=k)

        patch[k] = val

    return patch


def enforce_rules_submission(patch: dict, *, current=None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.

    `current` is the persisted submission for partial updates, so a patch
    that only moves one end of the implementation window is still checked
    against the other end.
    """
    if "worker_count" in patch and patch["worker_count"] is not None:
        count = patch["worker_count"]
        if count < 0:
            raise ValidationError("worker_count must be >= 0", field="worker_count")
        if count > MAX_WORKER_COUNT:
            raise ValidationError(f"worker_count cannot exceed {MAX_WORKER_COUNT}", field="worker_count")

    start = patch.get("implementation_start_date")
    end = patch.get("implementation_end_date")
    if current is not None:
        if "implementation_start_date" not in patch:
            start = current.implementation_start_date
        if "implementation_end_date" not in patch:
            end = current.implementation_end_date
    if start is not None and end is not None and end < start:
        raise ValidationError(
            "implementation_end_date must not be before implementation_start_date",
            field="implementation_end_date",
        )


def enforce_rules_worker(patch: dict) -> None:
    name = patch.get("worker_name")
    if name is None or not str(name).strip():
        raise ValidationError("worker_name is required", field="worker_name")
