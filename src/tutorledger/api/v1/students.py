"""Student progress ledger and session credit endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import (
    AttendanceUpdate,
    CommentUpdate,
    ContentEventCreate,
    ContentEventResult,
    CreditAccountRead,
    CreditAccountUpdate,
    HomeworkUpdate,
    MessageFlagUpdate,
    PeriodRecordRead,
    ProgressRead,
    QuizUpdate,
    ResetSummary,
    StudentSummary,
)
from ...services import credit_service, ledger_service, view_code_service
from ...services.errors import LedgerRuleViolation

router = APIRouter(prefix="/students", tags=["students"])

_PERIOD_EXAMPLE = {
    "period_key": "week:3",
    "attended": True,
    "last_attendance_at": "2025-11-12T14:30:00",
    "last_attendance_center": "Maadi",
    "homework_state": "DONE",
    "homework_obtained": "8.50",
    "homework_total": "10.00",
    "quiz_state": "UNGRADED",
    "quiz_obtained": None,
    "quiz_total": None,
    "comment": None,
    "student_message_sent": False,
    "parent_message_sent": False,
    "paid": True,
}


@router.get(
    "/{student_id}/progress",
    response_model=ProgressRead,
    summary="Current progress",
    responses={
        200: {
            "description": "Student, credit balance and current period",
            "content": {
                "application/json": {
                    "example": {
                        "student": {
                            "student_id": 1042,
                            "name": "Mariam Adel",
                            "grade": "Senior 2",
                            "account_state": "ACTIVE",
                        },
                        "sessions_remaining": 7,
                        "current_period": _PERIOD_EXAMPLE,
                    }
                }
            },
        },
        404: {"description": "Student not found"},
    },
)
def get_progress(
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ProgressRead:
    """Return the student's credit balance and the period they attended most recently."""

    try:
        student, record = ledger_service.get_progress(db, student_id=student_id)
        db.commit()
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    return ProgressRead(
        student=StudentSummary.model_validate(student),
        sessions_remaining=student.sessions_remaining,
        current_period=PeriodRecordRead.model_validate(record) if record is not None else None,
    )


@router.get(
    "/{student_id}/periods",
    response_model=List[PeriodRecordRead],
    summary="List period records",
    responses={404: {"description": "Student not found"}},
)
def list_periods(
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> List[PeriodRecordRead]:
    """Weeks first in number order, then lessons by name."""

    try:
        records = ledger_service.list_periods(db, student_id=student_id)
        db.commit()
        return list(records)
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{student_id}/attendance",
    response_model=PeriodRecordRead,
    summary="Mark attendance",
    responses={
        200: {
            "description": "Updated period record",
            "content": {"application/json": {"example": _PERIOD_EXAMPLE}},
        },
        402: {"description": "No session credits left"},
        403: {"description": "Account deactivated"},
        404: {"description": "Student not found"},
    },
)
def set_attendance(
    payload: AttendanceUpdate,
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> PeriodRecordRead:
    """Mark a period attended (spending one credit) or not attended (refunding it).

    Example request body::

        {
            "period": {"week": 3},
            "attended": true,
            "center": "Maadi"
        }
    """

    try:
        record = ledger_service.set_attendance(
            db,
            student_id=student_id,
            period_key=payload.period.to_key(),
            attended=payload.attended,
            center=payload.center,
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{student_id}/homework",
    response_model=PeriodRecordRead,
    summary="Record homework outcome",
    responses={
        403: {"description": "Account deactivated"},
        404: {"description": "Student not found"},
        409: {"description": "Period not attended"},
    },
)
def set_homework(
    payload: HomeworkUpdate,
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> PeriodRecordRead:
    try:
        record = ledger_service.set_homework_state(
            db,
            student_id=student_id,
            period_key=payload.period.to_key(),
            state=payload.state,
            score=payload.score.as_tuple() if payload.score else None,
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{student_id}/quiz",
    response_model=PeriodRecordRead,
    summary="Record quiz outcome",
    responses={
        403: {"description": "Account deactivated"},
        404: {"description": "Student not found"},
        409: {"description": "Period not attended"},
    },
)
def set_quiz(
    payload: QuizUpdate,
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> PeriodRecordRead:
    """Record a quiz score, a non-scored outcome, or neither to clear the grade.

    Example request body::

        {
            "period": {"lesson": "Organic Chemistry 1"},
            "score": {"obtained": 14, "total": 20}
        }
    """

    try:
        record = ledger_service.set_quiz_score(
            db,
            student_id=student_id,
            period_key=payload.period.to_key(),
            result=payload.result(),
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{student_id}/comment",
    response_model=PeriodRecordRead,
    summary="Set period comment",
    responses={403: {"description": "Account deactivated"}, 404: {"description": "Student not found"}},
)
def set_comment(
    payload: CommentUpdate,
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> PeriodRecordRead:
    try:
        record = ledger_service.set_comment(
            db,
            student_id=student_id,
            period_key=payload.period.to_key(),
            text=payload.text,
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{student_id}/message-flags",
    response_model=PeriodRecordRead,
    summary="Set message sent flag",
    responses={403: {"description": "Account deactivated"}, 404: {"description": "Student not found"}},
)
def set_message_flag(
    payload: MessageFlagUpdate,
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> PeriodRecordRead:
    try:
        record = ledger_service.set_message_flag(
            db,
            student_id=student_id,
            period_key=payload.period.to_key(),
            which=payload.which,
            sent=payload.sent,
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/reset-all",
    response_model=ResetSummary,
    summary="Reset every active student",
)
def reset_all(db: Session = Depends(get_db)) -> ResetSummary:
    """Drop all period records and attendance history for active students.

    Consumed session credits are not returned.
    """

    summary = ledger_service.reset_all(db)
    db.commit()
    return ResetSummary(**summary)


@router.post(
    "/{student_id}/reset",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset one student",
    responses={403: {"description": "Account deactivated"}, 404: {"description": "Student not found"}},
)
def reset_student(
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> None:
    try:
        ledger_service.reset_student(db, student_id=student_id)
        db.commit()
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/{student_id}/credits",
    response_model=CreditAccountRead,
    summary="Session credit account",
    responses={404: {"description": "Student not found"}},
)
def get_credits(
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> CreditAccountRead:
    try:
        return credit_service.get_account(db, student_id=student_id)
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.put(
    "/{student_id}/credits",
    response_model=CreditAccountRead,
    summary="Overwrite session credits",
    responses={
        200: {
            "description": "Updated credit account",
            "content": {
                "application/json": {
                    "example": {
                        "student_id": 1042,
                        "sessions_remaining": 8,
                        "payment_cost": "400.00",
                        "payment_comment": "November package",
                        "payment_date": "2025-11-01T09:00:00",
                    }
                }
            },
        },
        400: {"description": "Invalid count or cost"},
        404: {"description": "Student not found"},
    },
)
def set_credits(
    payload: CreditAccountUpdate,
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> CreditAccountRead:
    """Replace the remaining session count and payment details.

    Example request body::

        {
            "count": 8,
            "cost": "400.00",
            "comment": "November package"
        }
    """

    try:
        student = credit_service.set_credits(
            db,
            student_id=student_id,
            count=payload.count,
            cost=payload.cost,
            comment=payload.comment,
            purchased_at=payload.purchased_at,
        )
        db.commit()
        db.refresh(student)
        return student
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.delete(
    "/{student_id}/credits",
    response_model=CreditAccountRead,
    summary="Clear session credits",
    responses={404: {"description": "Student not found"}},
)
def clear_credits(
    student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> CreditAccountRead:
    try:
        student = credit_service.clear_credits(db, student_id=student_id)
        db.commit()
        db.refresh(student)
        return student
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{student_id}/contents/{content_id}/events",
    response_model=ContentEventResult,
    summary="Report a content view or finish",
    responses={
        200: {
            "description": "Event processed",
            "content": {
                "application/json": {
                    "example": {
                        "action": "finish",
                        "vvc_id": 311,
                        "remaining_views": 2,
                        "attendance_marked": True,
                    }
                }
            },
        },
        400: {"description": "Unknown action"},
        402: {"description": "No session credits left for the attendance"},
        403: {"description": "Account deactivated"},
        404: {"description": "Student, content or unlock not found"},
    },
)
def record_content_event(
    payload: ContentEventCreate,
    student_id: int = Path(..., ge=1),
    content_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ContentEventResult:
    """Opening content is free; finishing it spends a view and marks attendance."""

    try:
        result = view_code_service.record_content_event(
            db,
            student_id=student_id,
            content_id=content_id,
            action=payload.action,
        )
        db.commit()
        return ContentEventResult(**result)
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
