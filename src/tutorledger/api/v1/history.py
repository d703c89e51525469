"""Attendance history reporting endpoint."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import HistoryEntryRead
from ...services import history_service

router = APIRouter(prefix="/history", tags=["history"])


@router.get(
    "",
    response_model=List[HistoryEntryRead],
    summary="Attendance history",
    responses={
        200: {
            "description": "Attended periods in the order they were recorded",
            "content": {
                "application/json": {
                    "example": [
                        {
                            "entry_id": 5120,
                            "student_id": 1042,
                            "student_name": "Mariam Adel",
                            "grade": "Senior 2",
                            "period_key": "week:3",
                            "attended_at": "2025-11-12T14:30:00",
                            "center": "Maadi",
                            "paid": True,
                            "sessions_remaining": 7,
                            "recorded_at": "2025-11-12T14:30:00",
                        }
                    ]
                }
            },
        }
    },
)
def list_history(
    student_id: Optional[int] = Query(None, ge=1, description="Filter by student id"),
    limit: int = Query(100, ge=1, le=500, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[HistoryEntryRead]:
    """Return audit entries joined with live ledger state.

    Entries for periods that are no longer attended are skipped, and duplicate
    entries for a period are reported once.
    """

    rows = history_service.list_for_reporting(db, student_id=student_id, limit=limit, offset=offset)
    response: List[HistoryEntryRead] = []
    for student, record, entry in rows:
        response.append(
            HistoryEntryRead(
                entry_id=entry.entry_id,
                student_id=student.student_id,
                student_name=student.name,
                grade=student.grade,
                period_key=record.period_key,
                attended_at=record.last_attendance_at,
                center=record.last_attendance_center,
                paid=record.paid,
                sessions_remaining=student.sessions_remaining,
                recorded_at=entry.created_at,
            )
        )
    return response
