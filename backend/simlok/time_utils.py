# Overview: Date helpers; every timestamp is stored as naive UTC and serialized with a trailing Z.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


# Month names as printed on permits
ID_MONTHS = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)


def utcnow() -> datetime:
    """Current time as naive UTC, the form every DateTime column holds."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a client-supplied date or datetime.

    Date-only strings ("2024-05-01") mean midnight. Values without an
    offset are taken as UTC; "Z" and "+07:00" style offsets are converted.
    Blank input gives None. Raises ValueError for anything else.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"

    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """2024-06-01T00:00:00Z; whole seconds, naive input treated as UTC."""
    if dt is None:
        return None
    stamp = _as_naive_utc(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"


def format_id_date(value: Optional[datetime | date], *, long: bool = False) -> str:
    """
    Date as printed on permits and exports.

    Short form is DD-MM-YYYY; long form spells the month ("1 Mei 2024").
    Missing dates print as "-".
    """
    if value is None:
        return "-"
    if long:
        return f"{value.day} {ID_MONTHS[value.month - 1]} {value.year}"
    return value.strftime("%d-%m-%Y")
