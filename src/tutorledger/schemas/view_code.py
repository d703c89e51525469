"""Pydantic schemas for video view credit codes."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import CodePaymentState


class ViewCodeBatchCreate(BaseModel):
    """Request body for issuing a batch of view codes."""

    count: int = Field(..., ge=1, description="Number of codes to issue.")
    views: int = Field(..., ge=1, description="Completed views each code is worth.")
    enabled: bool = True
    issued_by: Optional[str] = Field(None, max_length=100)


class ViewCodeRead(BaseModel):
    vvc_id: int
    code: str
    remaining_views: int
    claimed: bool
    claimed_by: Optional[int]
    enabled: bool
    payment_state: CodePaymentState
    issued_by: Optional[str]
    issued_at: datetime

    class Config:
        from_attributes = True


class ViewCodePage(BaseModel):
    items: List[ViewCodeRead]
    total: int
    limit: int
    offset: int


class ViewCodeUpdate(BaseModel):
    remaining_views: Optional[int] = Field(None, ge=1)
    enabled: Optional[bool] = None
    payment_state: Optional[CodePaymentState] = None


class ViewCodeCheck(BaseModel):
    """Claim a code for a student and unlock a content item with it."""

    code: str = Field(..., min_length=1, max_length=32)
    student_id: int = Field(..., ge=1)
    content_id: int = Field(..., ge=1)


class ViewCodeClaimResult(BaseModel):
    vvc_id: int
    remaining_views: int
