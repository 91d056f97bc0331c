# Overview: Service-layer operations for document numbering; per-type, per-year atomic counters.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..extensions import db
from ..models import DocumentCounter
from stockdesk.time_utils import utcnow


class DocumentSequenceError(Exception):
    """Raised when a document number cannot be allocated."""
    pass


# counter_type -> prefix
DOCUMENT_PREFIXES = {
    "orders": "ENC",
    "stock_entries": "ENT",
    "stock_exits": "SAI",
    "expenses": "DESP",
}


def format_document_number(prefix: str, year: int, seq: int, *, pad: int = 3) -> str:
    """ENC-2025/003. Sequences wider than `pad` digits are kept whole."""
    return f"{prefix}-{year}/{seq:0{pad}d}"


def _validate(counter_type: str, year: int) -> None:
    if counter_type not in DOCUMENT_PREFIXES:
        raise DocumentSequenceError(f"Unknown counter type: {counter_type}")
    if not isinstance(year, int) or year < 1900:
        raise DocumentSequenceError("year is required")


def next_counter_by_year(counter_type: str, year: int) -> int:
    """
    Atomically allocate the next sequence value for (counter_type, year).

    A single UPDATE increments the row, so two writers can never observe the
    same value. The first allocation of a year inserts the row at 1; a racing
    insert hits the unique constraint and falls back to the UPDATE path.

    Runs inside the caller's transaction: if the document insert that follows
    fails and rolls back, the number is released with it.
    """
    _validate(counter_type, year)

    stmt = (
        update(DocumentCounter)
        .where(
            DocumentCounter.counter_type == counter_type,
            DocumentCounter.year == year,
        )
        .values(current_count=DocumentCounter.current_count + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )

    def _read_current() -> int:
        return (
            db.session.query(DocumentCounter.current_count)
            .filter_by(counter_type=counter_type, year=year)
            .scalar()
        )

    try:
        result = db.session.execute(stmt)
        if result.rowcount:
            return _read_current()

        try:
            with db.session.begin_nested():
                db.session.add(DocumentCounter(counter_type=counter_type, year=year, current_count=1))
            return 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise DocumentSequenceError(f"Could not allocate {counter_type} number for {year}")
            return _read_current()
    except (DocumentSequenceError, OperationalError):
        # A locked counter row is left for run_with_retry
        raise
    except SQLAlchemyError as exc:
        raise DocumentSequenceError(f"Could not allocate {counter_type} number for {year}") from exc


def peek_next_counter_by_year(counter_type: str, year: int) -> int:
    """The value next_counter_by_year would hand out, without consuming it."""
    _validate(counter_type, year)
    current = (
        db.session.query(DocumentCounter.current_count)
        .filter_by(counter_type=counter_type, year=year)
        .scalar()
    )
    return (current or 0) + 1


def next_document_number(counter_type: str, year: int | None = None) -> str:
    """Allocate and format the next number, e.g. SAI-2025/014."""
    year = year or utcnow().year
    seq = next_counter_by_year(counter_type, year)
    return format_document_number(DOCUMENT_PREFIXES[counter_type], year, seq)


def peek_document_number(counter_type: str, year: int | None = None) -> str:
    year = year or utcnow().year
    return format_document_number(DOCUMENT_PREFIXES[counter_type], year, peek_next_counter_by_year(counter_type, year))
