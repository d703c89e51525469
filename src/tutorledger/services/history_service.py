"""Attendance audit log consumed by reporting."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from ..models import AttendanceHistory, PeriodKey, PeriodRecord, Student


def record(session: Session, *, student_id: int, period_key: PeriodKey) -> bool:
    """Add an audit entry for the pair unless one already exists."""

    encoded = period_key.encode()
    existing_stmt = (
        select(AttendanceHistory.entry_id)
        .where(AttendanceHistory.student_id == student_id, AttendanceHistory.period_key == encoded)
        .limit(1)
    )
    if session.execute(existing_stmt).scalar_one_or_none() is not None:
        return False

    session.add(AttendanceHistory(student_id=student_id, period_key=encoded))
    session.flush()
    return True


def retract(session: Session, *, student_id: int, period_key: PeriodKey) -> int:
    """Delete every audit entry for the pair, returning how many were removed."""

    result = session.execute(
        delete(AttendanceHistory).where(
            AttendanceHistory.student_id == student_id,
            AttendanceHistory.period_key == period_key.encode(),
        )
    )
    return result.rowcount


def clear(session: Session, *, student_ids: Optional[Iterable[int]] = None) -> int:
    """Bulk-delete audit entries, optionally only for the given students."""

    stmt = delete(AttendanceHistory)
    if student_ids is not None:
        stmt = stmt.where(AttendanceHistory.student_id.in_(list(student_ids)))
    return session.execute(stmt).rowcount


def first_entry_ids():
    """Subquery of the oldest entry id for every (student, period) pair."""

    return select(func.min(AttendanceHistory.entry_id)).group_by(
        AttendanceHistory.student_id, AttendanceHistory.period_key
    )


def list_for_reporting(
    session: Session,
    *,
    student_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
) -> Sequence[tuple[Student, PeriodRecord, AttendanceHistory]]:
    """Join audit entries with live ledger state.

    Entries whose period record is missing or no longer attended are left out,
    and duplicate entries for a pair collapse to the oldest one.
    """

    stmt = (
        select(Student, PeriodRecord, AttendanceHistory)
        .join(
            PeriodRecord,
            and_(
                PeriodRecord.student_id == AttendanceHistory.student_id,
                PeriodRecord.period_key == AttendanceHistory.period_key,
            ),
        )
        .join(Student, Student.student_id == AttendanceHistory.student_id)
        .where(
            PeriodRecord.attended.is_(True),
            AttendanceHistory.entry_id.in_(first_entry_ids()),
        )
        .order_by(AttendanceHistory.entry_id.asc())
        .offset(offset)
        .limit(limit)
    )
    if student_id is not None:
        stmt = stmt.where(AttendanceHistory.student_id == student_id)

    return session.execute(stmt).all()
