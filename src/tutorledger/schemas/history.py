"""Attendance history reporting schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class HistoryEntryRead(BaseModel):
    """One attended period, joined with live ledger state."""

    entry_id: int
    student_id: int
    student_name: str
    grade: Optional[str]
    period_key: str
    attended_at: Optional[datetime]
    center: Optional[str]
    paid: bool
    sessions_remaining: int
    recorded_at: datetime
