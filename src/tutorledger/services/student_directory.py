"""Student lookups shared by the ledger and redemption services."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Student
from .errors import AccountDeactivated, NotFound


def get_student(session: Session, student_id: int, *, for_update: bool = False) -> Student:
    """Load a student, optionally taking a row lock on it.

    Writers that touch both the credit account and period records lock the
    student first, so every such transaction acquires its locks in the same order.
    """

    stmt = select(Student).where(Student.student_id == student_id)
    if for_update:
        stmt = stmt.with_for_update(nowait=False).execution_options(populate_existing=True)
    student = session.execute(stmt).scalar_one_or_none()
    if student is None:
        raise NotFound(f"Student {student_id} not found")
    return student


def get_active_student(session: Session, student_id: int, *, for_update: bool = False) -> Student:
    """Return the student, refusing deactivated accounts."""

    student = get_student(session, student_id, for_update=for_update)
    if student.is_deactivated:
        raise AccountDeactivated(f"Student {student_id} account is deactivated")
    return student
