"""Pydantic schemas for period addressing and period records."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..models import HomeworkState, PeriodKey, QuizState


class PeriodKeyIn(BaseModel):
    """A period addressed either by lesson name or by week number."""

    lesson: Optional[str] = Field(None, min_length=1, max_length=200)
    week: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def _exactly_one(self) -> "PeriodKeyIn":
        if (self.lesson is None) == (self.week is None):
            raise ValueError("Provide exactly one of lesson or week")
        if self.lesson is not None and not self.lesson.strip():
            raise ValueError("Lesson name must not be blank")
        return self

    def to_key(self) -> PeriodKey:
        if self.week is not None:
            return PeriodKey.by_number(self.week)
        return PeriodKey.by_name(self.lesson)


class ScoreIn(BaseModel):
    obtained: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    total: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def _within_total(self) -> "ScoreIn":
        if self.obtained > self.total:
            raise ValueError("obtained must not exceed total")
        return self

    def as_tuple(self) -> tuple[Decimal, Decimal]:
        return self.obtained, self.total


class AttendanceUpdate(BaseModel):
    """Request body for toggling attendance."""

    period: PeriodKeyIn
    attended: bool
    center: Optional[str] = Field(None, max_length=100, description="Center where the session took place.")


class HomeworkUpdate(BaseModel):
    period: PeriodKeyIn
    state: HomeworkState
    score: Optional[ScoreIn] = Field(None, description="Only kept when state is DONE.")


class QuizUpdate(BaseModel):
    """Either a score, or one of the non-scored outcomes, or neither to ungrade."""

    period: PeriodKeyIn
    score: Optional[ScoreIn] = None
    outcome: Optional[Literal["DID_NOT_ATTEND", "NO_QUIZ", "UNGRADED"]] = None

    @model_validator(mode="after")
    def _not_both(self) -> "QuizUpdate":
        if self.score is not None and self.outcome is not None:
            raise ValueError("Provide either score or outcome, not both")
        return self

    def result(self):
        if self.score is not None:
            return self.score.as_tuple()
        if self.outcome is not None:
            return QuizState(self.outcome)
        return None


class CommentUpdate(BaseModel):
    period: PeriodKeyIn
    text: Optional[str] = Field(None, max_length=1000)


class MessageFlagUpdate(BaseModel):
    period: PeriodKeyIn
    which: Literal["student", "parent"]
    sent: bool


class PeriodRecordRead(BaseModel):
    """Ledger state for one student period."""

    period_key: str
    attended: bool
    last_attendance_at: Optional[datetime]
    last_attendance_center: Optional[str]
    homework_state: HomeworkState
    homework_obtained: Optional[Decimal]
    homework_total: Optional[Decimal]
    quiz_state: QuizState
    quiz_obtained: Optional[Decimal]
    quiz_total: Optional[Decimal]
    comment: Optional[str]
    student_message_sent: bool
    parent_message_sent: bool
    paid: bool

    class Config:
        from_attributes = True
