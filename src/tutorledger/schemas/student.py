"""Pydantic schemas for student progress and the session credit account."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..models import AccountState
from .period import PeriodRecordRead


class StudentSummary(BaseModel):
    """Lightweight projection of student details."""

    student_id: int
    name: str
    grade: Optional[str]
    account_state: AccountState

    class Config:
        from_attributes = True


class CreditAccountRead(BaseModel):
    student_id: int
    sessions_remaining: int = Field(..., ge=0)
    payment_cost: Optional[Decimal]
    payment_comment: Optional[str]
    payment_date: Optional[datetime]

    class Config:
        from_attributes = True


class CreditAccountUpdate(BaseModel):
    """Administrative overwrite of a student's session credits."""

    count: int = Field(..., gt=0, description="Sessions purchased.")
    cost: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    comment: Optional[str] = Field(None, max_length=280)
    purchased_at: Optional[datetime] = None


class ProgressRead(BaseModel):
    """Student, credit balance and the period the current-period pointer names."""

    student: StudentSummary
    sessions_remaining: int
    current_period: Optional[PeriodRecordRead]


class ResetSummary(BaseModel):
    students_reset: int
    periods_removed: int
    history_removed: int


class ContentEventCreate(BaseModel):
    action: str = Field(..., description='Either "view" or "finish".')


class ContentEventResult(BaseModel):
    action: str
    vvc_id: Optional[int]
    remaining_views: Optional[int]
    attendance_marked: bool
