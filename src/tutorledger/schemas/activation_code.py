"""Pydantic schemas for activation code workflows."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ActivationCodeCreate(BaseModel):
    owner_student_id: int = Field(..., ge=1)


class ActivationCodeRangeCreate(BaseModel):
    """Issue codes for every student id in an inclusive range."""

    first_id: int = Field(..., ge=1)
    last_id: int = Field(..., ge=1)


class ActivationCodeRead(BaseModel):
    owner_student_id: int
    code: str
    activated: bool
    issued_at: datetime
    activated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ActivationCodeIssued(BaseModel):
    code: ActivationCodeRead
    regenerated: bool = Field(..., description="True when an existing code was replaced.")


class ActivationCodeRangeResult(BaseModel):
    created: List[ActivationCodeRead]
    already_existed: List[int]


class ActivationCodeCheck(BaseModel):
    owner_student_id: int = Field(..., ge=1)
    code: str = Field(..., min_length=1, max_length=32)


class ActivationCodeStatus(BaseModel):
    exists: bool
    valid: bool
    activated: bool


class ActivationRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    owner_student_id: Optional[int] = Field(None, ge=1)
