"""Per-student, per-period progress record."""

import enum
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow
from .period_key import PeriodKey


class HomeworkState(str, enum.Enum):
    """Mutually exclusive homework outcomes."""

    NOT_DONE = "NOT_DONE"
    DONE = "DONE"
    NO_HOMEWORK = "NO_HOMEWORK"
    NOT_COMPLETED = "NOT_COMPLETED"


class QuizState(str, enum.Enum):
    """Quiz outcome; only SCORED carries a score pair."""

    UNGRADED = "UNGRADED"
    SCORED = "SCORED"
    DID_NOT_ATTEND = "DID_NOT_ATTEND"
    NO_QUIZ = "NO_QUIZ"


class PeriodRecord(Base):
    """Attendance, homework, quiz and messaging state for one student period."""

    __tablename__ = "period_records"
    __table_args__ = (
        UniqueConstraint("student_id", "period_key", name="period_records_student_period_unique"),
        CheckConstraint(
            "(homework_obtained IS NULL AND homework_total IS NULL) "
            "OR (homework_obtained >= 0 AND homework_total > 0 AND homework_obtained <= homework_total)",
            name="period_records_homework_score_valid",
        ),
        CheckConstraint(
            "(quiz_state = 'SCORED' AND quiz_obtained IS NOT NULL AND quiz_total IS NOT NULL) "
            "OR (quiz_state <> 'SCORED' AND quiz_obtained IS NULL AND quiz_total IS NULL)",
            name="period_records_quiz_score_matches_state",
        ),
    )

    record_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False)
    period_key = Column(String, nullable=False)

    attended = Column(Boolean, nullable=False, default=False)
    last_attendance_at = Column(DateTime)
    last_attendance_center = Column(String)

    homework_state = Column(
        SAEnum(HomeworkState, name="homework_state"), nullable=False, default=HomeworkState.NOT_DONE
    )
    homework_obtained = Column(Numeric(10, 2))
    homework_total = Column(Numeric(10, 2))

    quiz_state = Column(SAEnum(QuizState, name="quiz_state"), nullable=False, default=QuizState.UNGRADED)
    quiz_obtained = Column(Numeric(10, 2))
    quiz_total = Column(Numeric(10, 2))

    comment = Column(String)
    student_message_sent = Column(Boolean, nullable=False, default=False)
    parent_message_sent = Column(Boolean, nullable=False, default=False)
    paid = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    student = relationship("Student", back_populates="periods")

    @property
    def key(self) -> PeriodKey:
        return PeriodKey.parse(self.period_key)

    @property
    def homework_score(self) -> tuple[Decimal, Decimal] | None:
        if self.homework_obtained is None:
            return None
        return self.homework_obtained, self.homework_total

    @property
    def quiz_score(self) -> tuple[Decimal, Decimal] | None:
        if self.quiz_obtained is None:
            return None
        return self.quiz_obtained, self.quiz_total
