"""Endpoints for video view credit codes."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...models import CodePaymentState
from ...schemas import (
    ViewCodeBatchCreate,
    ViewCodeCheck,
    ViewCodeClaimResult,
    ViewCodePage,
    ViewCodeRead,
    ViewCodeUpdate,
)
from ...services import view_code_service
from ...services.errors import LedgerRuleViolation

router = APIRouter(prefix="/view-codes", tags=["view-codes"])


@router.post(
    "",
    response_model=List[ViewCodeRead],
    status_code=status.HTTP_201_CREATED,
    summary="Issue a batch of view codes",
    responses={
        201: {
            "description": "Codes issued",
            "content": {
                "application/json": {
                    "example": [
                        {
                            "vvc_id": 311,
                            "code": "82Kd5q1L0",
                            "remaining_views": 3,
                            "claimed": False,
                            "claimed_by": None,
                            "enabled": True,
                            "payment_state": "NOT_PAID",
                            "issued_by": "front-desk",
                            "issued_at": "2025-11-12T10:15:30",
                        }
                    ]
                }
            },
        },
        400: {"description": "Count or views out of range"},
    },
)
def issue_batch(
    payload: ViewCodeBatchCreate,
    db: Session = Depends(get_db),
) -> List[ViewCodeRead]:
    """Issue ``count`` codes, each worth ``views`` completed views.

    Example request body::

        {
            "count": 10,
            "views": 3,
            "issued_by": "front-desk"
        }
    """

    try:
        created = view_code_service.issue_batch(
            db,
            count=payload.count,
            views=payload.views,
            enabled=payload.enabled,
            issued_by=payload.issued_by,
        )
        db.commit()
        return [ViewCodeRead.model_validate(record) for record in created]
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "",
    response_model=ViewCodePage,
    summary="List view codes",
)
def list_codes(
    *,
    search: Optional[str] = Query(None, max_length=100, description="Code prefix or issuer"),
    claimed: Optional[bool] = Query(None),
    enabled: Optional[bool] = Query(None),
    payment_state: Optional[CodePaymentState] = Query(None),
    limit: int = Query(50, ge=1, le=200, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> ViewCodePage:
    items, total = view_code_service.list_codes(
        db,
        search=search,
        claimed=claimed,
        enabled=enabled,
        payment_state=payment_state,
        limit=limit,
        offset=offset,
    )
    return ViewCodePage(
        items=[ViewCodeRead.model_validate(record) for record in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/check",
    response_model=ViewCodeClaimResult,
    summary="Claim a view code for content",
    responses={
        403: {"description": "Code deactivated"},
        404: {"description": "Code, student or content not found"},
        409: {"description": "Code already used"},
    },
)
def check_and_claim(
    payload: ViewCodeCheck,
    db: Session = Depends(get_db),
) -> ViewCodeClaimResult:
    """Claim the code for the student and unlock the content with it.

    Checking does not spend a view; finishing the content does.
    """

    try:
        vvc_id, remaining = view_code_service.check_and_claim(
            db,
            code=payload.code,
            claimant_id=payload.student_id,
            content_id=payload.content_id,
        )
        db.commit()
        return ViewCodeClaimResult(vvc_id=vvc_id, remaining_views=remaining)
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.put(
    "/{vvc_id}",
    response_model=ViewCodeRead,
    summary="Update a view code",
    responses={400: {"description": "Nothing to update"}, 404: {"description": "Code not found"}},
)
def update_code(
    payload: ViewCodeUpdate,
    vvc_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> ViewCodeRead:
    try:
        record = view_code_service.update_code(
            db,
            vvc_id=vvc_id,
            remaining_views=payload.remaining_views,
            enabled=payload.enabled,
            payment_state=payload.payment_state,
        )
        db.commit()
        db.refresh(record)
        return record
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.delete(
    "/{vvc_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a view code",
    responses={404: {"description": "Code not found"}},
)
def delete_code(
    vvc_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> None:
    try:
        view_code_service.delete_code(db, vvc_id=vvc_id)
        db.commit()
    except LedgerRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
