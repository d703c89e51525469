"""Attendance audit entries used by reporting."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from ..core.database import Base
from ..utils.datetime import utcnow


class AttendanceHistory(Base):
    """Asserts that a student attended a period and has not been un-attended since.

    Uniqueness of ``(student_id, period_key)`` is not enforced by the table;
    readers collapse duplicates.
    """

    __tablename__ = "attendance_history"
    __table_args__ = (Index("attendance_history_student_period", "student_id", "period_key"),)

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False)
    period_key = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
