"""Prepaid session credit account embedded in each student."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..models import PeriodRecord, Student
from ..utils.datetime import utcnow
from .errors import InsufficientCredit, InvalidState
from .student_directory import get_student

logger = logging.getLogger(__name__)


def _adjust_balance(session: Session, student_id: int, delta: int) -> int:
    stmt = (
        update(Student)
        .where(Student.student_id == student_id)
        .values(sessions_remaining=Student.sessions_remaining + delta, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if delta < 0:
        stmt = stmt.where(Student.sessions_remaining >= -delta)
    rowcount = session.execute(stmt).rowcount
    student = session.get(Student, student_id)
    if student is not None:
        session.expire(student, ["sessions_remaining", "updated_at"])
    return rowcount


def _set_paid(session: Session, record: PeriodRecord, paid: bool) -> int:
    rowcount = session.execute(
        update(PeriodRecord)
        .where(PeriodRecord.record_id == record.record_id, PeriodRecord.paid.is_(not paid))
        .values(paid=paid, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount
    session.expire(record, ["paid", "updated_at"])
    return rowcount


def consume_one(session: Session, *, student_id: int, record: PeriodRecord) -> bool:
    """Charge one session credit for ``record`` and mark it paid.

    Returns ``False`` without charging when the record is already paid. Raises
    :class:`InsufficientCredit` when the balance is zero; nothing is written in
    that case.
    """

    session.flush()
    if _adjust_balance(session, student_id, -1) == 0:
        raise InsufficientCredit(f"Student {student_id} has no remaining session credits")

    if _set_paid(session, record, True) == 0:
        # Another writer paid for this period first; give the credit back.
        _adjust_balance(session, student_id, 1)
        return False

    logger.info("consumed session credit for student %s period %s", student_id, record.period_key)
    return True


def refund_one(session: Session, *, student_id: int, record: PeriodRecord) -> bool:
    """Reverse the charge for ``record`` if it is currently paid."""

    session.flush()
    if _set_paid(session, record, False) == 0:
        return False

    _adjust_balance(session, student_id, 1)
    logger.info("refunded session credit for student %s period %s", student_id, record.period_key)
    return True


def get_account(session: Session, *, student_id: int) -> Student:
    """Return the student carrying the credit account fields."""

    return get_student(session, student_id)


def set_credits(
    session: Session,
    *,
    student_id: int,
    count: int,
    cost: Decimal | float,
    comment: Optional[str] = None,
    purchased_at: Optional[datetime] = None,
) -> Student:
    """Overwrite the student's credit account with a new purchase.

    Periods already marked paid keep their flag; a later un-attend refunds into
    the new balance.
    """

    if count <= 0:
        raise InvalidState("Number of sessions must be a positive number")
    if Decimal(str(cost)) <= 0:
        raise InvalidState("Cost must be a positive number")

    student = get_student(session, student_id, for_update=True)
    student.sessions_remaining = count
    student.payment_cost = Decimal(str(cost))
    student.payment_comment = comment.strip() if comment and comment.strip() else None
    student.payment_date = purchased_at or utcnow()
    student.updated_at = utcnow()
    session.flush()
    logger.info("set %s session credits for student %s", count, student_id)
    return student


def clear_credits(session: Session, *, student_id: int) -> Student:
    student = get_student(session, student_id, for_update=True)
    student.sessions_remaining = 0
    student.payment_cost = None
    student.payment_comment = None
    student.payment_date = None
    student.updated_at = utcnow()
    session.flush()
    logger.info("cleared session credits for student %s", student_id)
    return student
