"""Endpoints for single-use account activation codes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import (
    ActivationCodeCheck,
    ActivationCodeCreate,
    ActivationCodeIssued,
    ActivationCodeRangeCreate,
    ActivationCodeRangeResult,
    ActivationCodeRead,
    ActivationCodeStatus,
    ActivationRequest,
)
from ...services import activation_service
from ...services.errors import LedgerRuleViolation

router = APIRouter(prefix="/activation-codes", tags=["activation-codes"])


@router.post(
    "",
    response_model=ActivationCodeIssued,
    status_code=status.HTTP_201_CREATED,
    summary="Issue an activation code",
    responses={
        201: {
            "description": "Code issued or regenerated",
            "content": {
                "application/json": {
                    "example": {
                        "code": {
                            "owner_student_id": 1042,
                            "code": "4aK7b9Q",
                            "activated": False,
                            "issued_at": "2025-11-12T10:15:30",
                            "activated_at": None,
                        },
                        "regenerated": False,
                    }
                }
            },
        },
        404: {"description": "Student not found"},
    },
)
def issue_code(
    payload: ActivationCodeCreate,
    db: Session = Depends(get_db),
) -> ActivationCodeIssued:
    """Issue a code for the student, replacing (and re-arming) any existing one."""

    try:
        record, existed = activation_service.issue_code(db, owner_student_id=payload.owner_student_id)
        db.commit()
        db.refresh(record)
        return ActivationCodeIssued(code=ActivationCodeRead.model_validate(record), regenerated=existed)
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/range",
    response_model=ActivationCodeRangeResult,
    status_code=status.HTTP_201_CREATED,
    summary="Issue activation codes for an id range",
    responses={
        400: {"description": "Invalid range"},
        409: {"description": "Every student in the range already has a code"},
    },
)
def issue_codes_for_range(
    payload: ActivationCodeRangeCreate,
    db: Session = Depends(get_db),
) -> ActivationCodeRangeResult:
    try:
        created, already_existed = activation_service.issue_codes_for_range(
            db,
            first_id=payload.first_id,
            last_id=payload.last_id,
        )
        db.commit()
        return ActivationCodeRangeResult(
            created=[ActivationCodeRead.model_validate(record) for record in created],
            already_existed=already_existed,
        )
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/check",
    response_model=ActivationCodeStatus,
    summary="Check an activation code",
)
def check_code(
    payload: ActivationCodeCheck,
    db: Session = Depends(get_db),
) -> ActivationCodeStatus:
    """Report whether the code matches the student's, without using it up."""

    return ActivationCodeStatus(
        **activation_service.check_code(db, owner_student_id=payload.owner_student_id, code=payload.code)
    )


@router.post(
    "/activate",
    response_model=ActivationCodeRead,
    summary="Activate an account",
    responses={
        404: {"description": "Code not found"},
        409: {"description": "Code already used"},
    },
)
def activate(
    payload: ActivationRequest,
    db: Session = Depends(get_db),
) -> ActivationCodeRead:
    """Use an activation code; each code activates exactly once.

    Example request body::

        {
            "code": "4aK7b9Q",
            "owner_student_id": 1042
        }
    """

    try:
        record = activation_service.activate(
            db,
            code=payload.code,
            owner_student_id=payload.owner_student_id,
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{owner_student_id}/regenerate",
    response_model=ActivationCodeRead,
    summary="Regenerate an activation code",
    responses={404: {"description": "Student has no code"}},
)
def regenerate_code(
    owner_student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ActivationCodeRead:
    try:
        record = activation_service.regenerate_code(db, owner_student_id=owner_student_id)
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "",
    response_model=List[ActivationCodeRead],
    summary="List activation codes",
)
def list_codes(
    *,
    owner_student_id: Optional[int] = Query(None, ge=1, description="Filter by owner"),
    activated: Optional[bool] = Query(None, description="Filter by activation state"),
    limit: int = Query(100, ge=1, le=500, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[ActivationCodeRead]:
    codes = activation_service.list_codes(
        db,
        owner_student_id=owner_student_id,
        activated=activated,
        limit=limit,
        offset=offset,
    )
    return list(codes)


@router.delete(
    "/{owner_student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an activation code",
    responses={404: {"description": "Student has no code"}},
)
def delete_code(
    owner_student_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> None:
    try:
        activation_service.delete_code(db, owner_student_id=owner_student_id)
        db.commit()
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
