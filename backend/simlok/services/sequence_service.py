# Overview: Service-layer operations for permit numbering; atomic per-year sequence.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SimlokSequence
from .concurrency import run_with_retry
from simlok.time_utils import utcnow


DEFAULT_SUFFIX = "SMKT/OPR"


class SequenceError(Exception):
    """Raised when permit number allocation fails."""
    pass


def format_simlok_number(year: int, number: int, *, suffix: str | None = None, pad: int = 4) -> str:
    """
    Permit number in the printed format.

    >>> format_simlok_number(2024, 1, suffix="SMKT/OPR")
    '2024/0001/SMKT/OPR'
    """
    if suffix is None:
        suffix = current_app.config.get("SIMLOK_NUMBER_SUFFIX", DEFAULT_SUFFIX)
    return f"{year}/{number:0{pad}d}/{suffix}"


def _current_number(year: int) -> int:
    return (
        db.session.query(SimlokSequence.last_number)
        .filter_by(year=year)
        .scalar()
    )


def allocate_simlok_number(year: int | None = None, *, commit: bool = False) -> str:
    """
    Atomically reserve the next permit number for `year` (defaults to now).

    The row is bumped with a single UPDATE ... SET last_number = last_number + 1,
    so two approvers finalizing at once never read the same value. The first
    allocation of a year inserts the row; losing that insert race falls back
    to the UPDATE.

    By default the caller's transaction owns the commit, so a failed
    finalize also gives the number back. Call this before staging other
    writes: a lost insert race rolls the session back.
    """
    if year is None:
        year = utcnow().year

    def _op() -> str:
        if year < 1:
            raise SequenceError("year must be positive")

        stmt = (
            update(SimlokSequence)
            .where(SimlokSequence.year == year)
            .values(last_number=SimlokSequence.last_number + 1, updated_at=utcnow())
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            number = _current_number(year)
        else:
            seq = SimlokSequence(year=year, last_number=1, updated_at=utcnow())
            db.session.add(seq)
            try:
                db.session.flush()
                number = 1
            except IntegrityError:
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                db.session.flush()
                number = _current_number(year)

        if commit:
            db.session.commit()
        return format_simlok_number(year, number)

    return run_with_retry(_op)


def preview_next_simlok_number(year: int | None = None) -> str:
    """Next permit number for `year` without reserving it."""
    if year is None:
        year = utcnow().year
    current = _current_number(year) or 0
    return format_simlok_number(year, current + 1)


def list_sequences() -> list[SimlokSequence]:
    return db.session.query(SimlokSequence).order_by(SimlokSequence.year.desc()).all()
