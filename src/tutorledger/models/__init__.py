"""SQLAlchemy models for the tutoring ledger."""

from .activation_code import ActivationCode
from .attendance_history import AttendanceHistory
from .content import Content, ContentAccess
from .period_key import PeriodKey
from .period_record import HomeworkState, PeriodRecord, QuizState
from .student import AccountState, Student
from .view_credit_code import CodePaymentState, ViewCreditCode

__all__ = [
    "AccountState",
    "ActivationCode",
    "AttendanceHistory",
    "CodePaymentState",
    "Content",
    "ContentAccess",
    "HomeworkState",
    "PeriodKey",
    "PeriodRecord",
    "QuizState",
    "Student",
    "ViewCreditCode",
]
