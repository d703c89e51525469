"""Scheduled repair of audit-log drift from ledger state."""

from __future__ import annotations

from sqlalchemy import and_, delete, exists, select, update
from sqlalchemy.orm import Session

from ..models import AttendanceHistory, PeriodRecord, Student
from .history_service import first_entry_ids


def run_reconciliation(session: Session) -> dict[str, int]:
    """Bring the attendance audit log back in line with the period records.

    The period records are authoritative. Returns summary statistics useful for
    logging/testing.
    """

    summary = {
        "stale_removed": 0,
        "duplicates_removed": 0,
        "missing_added": 0,
        "pointers_cleared": 0,
    }

    # Student rows before history rows, the same order the ledger writers lock in.
    pointer_valid = exists().where(
        PeriodRecord.student_id == Student.student_id,
        PeriodRecord.period_key == Student.current_period_key,
        PeriodRecord.attended.is_(True),
    )
    summary["pointers_cleared"] = session.execute(
        update(Student)
        .where(Student.current_period_key.is_not(None), ~pointer_valid)
        .values(current_period_key=None)
        .execution_options(synchronize_session=False)
    ).rowcount

    attended_match = exists().where(
        PeriodRecord.student_id == AttendanceHistory.student_id,
        PeriodRecord.period_key == AttendanceHistory.period_key,
        PeriodRecord.attended.is_(True),
    )
    summary["stale_removed"] = session.execute(
        delete(AttendanceHistory)
        .where(~attended_match)
        .execution_options(synchronize_session=False)
    ).rowcount

    # Materialized before the delete; some backends refuse a subquery on the target table.
    keep_ids = list(session.execute(first_entry_ids()).scalars())
    if keep_ids:
        summary["duplicates_removed"] = session.execute(
            delete(AttendanceHistory)
            .where(AttendanceHistory.entry_id.not_in(keep_ids))
            .execution_options(synchronize_session=False)
        ).rowcount

    missing_stmt = (
        select(PeriodRecord.student_id, PeriodRecord.period_key)
        .outerjoin(
            AttendanceHistory,
            and_(
                AttendanceHistory.student_id == PeriodRecord.student_id,
                AttendanceHistory.period_key == PeriodRecord.period_key,
            ),
        )
        .where(PeriodRecord.attended.is_(True), AttendanceHistory.entry_id.is_(None))
    )
    for student_id, period_key in session.execute(missing_stmt).all():
        session.add(AttendanceHistory(student_id=student_id, period_key=period_key))
        summary["missing_added"] += 1

    session.flush()
    session.expire_all()
    return summary
