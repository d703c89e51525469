"""Student directory model with the embedded session credit account."""

import enum

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Enum as SAEnum, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class AccountState(str, enum.Enum):
    """Whether the student's ledger may be mutated."""

    ACTIVE = "ACTIVE"
    DEACTIVATED = "DEACTIVATED"


class Student(Base):
    """A tutoring-center student as seen by the progress ledger."""

    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint("sessions_remaining >= 0", name="students_sessions_remaining_positive"),
    )

    student_id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    grade = Column(String)
    main_center = Column(String)
    account_state = Column(
        SAEnum(AccountState, name="account_state"), nullable=False, default=AccountState.ACTIVE
    )

    # Session credit account
    sessions_remaining = Column(Integer, nullable=False, default=0)
    payment_cost = Column(Numeric(10, 2))
    payment_comment = Column(String)
    payment_date = Column(DateTime)

    current_period_key = Column(String)
    # Pre-migration progress: positional list of week dicts or a lesson map.
    legacy_progress = Column(JSON(none_as_null=True))

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    periods = relationship("PeriodRecord", back_populates="student", cascade="all, delete-orphan")
    activation_code = relationship("ActivationCode", back_populates="owner", uselist=False)

    @property
    def is_deactivated(self) -> bool:
        return self.account_state == AccountState.DEACTIVATED
