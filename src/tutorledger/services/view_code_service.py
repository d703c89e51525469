"""Video view credit codes and the content watch events that spend them."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models import CodePaymentState, PeriodKey, ViewCreditCode
from ..utils.codes import view_credit_code
from . import content_service, ledger_service
from .errors import AlreadyUsed, Disabled, InvalidState, NotFound
from .student_directory import get_active_student, get_student

logger = logging.getLogger(__name__)

CONTENT_ACTIONS = ("view", "finish")


def _get_code(session: Session, vvc_id: int) -> ViewCreditCode:
    stmt = select(ViewCreditCode).where(ViewCreditCode.vvc_id == vvc_id)
    record = session.execute(stmt).scalar_one_or_none()
    if record is None:
        raise NotFound(f"View code {vvc_id} not found")
    return record


def issue_batch(
    session: Session,
    *,
    count: int,
    views: int,
    enabled: bool = True,
    issued_by: Optional[str] = None,
) -> list[ViewCreditCode]:
    """Create ``count`` fresh codes, each worth ``views`` completed views."""

    limit = get_settings().vvc_batch_limit
    if count < 1 or count > limit:
        raise InvalidState(f"Number of codes must be between 1 and {limit}")
    if views < 1:
        raise InvalidState("Number of views must be at least 1")

    taken = set(session.execute(select(ViewCreditCode.code)).scalars())
    codes: list[str] = []
    while len(codes) < count:
        candidate = view_credit_code()
        if candidate not in taken:
            taken.add(candidate)
            codes.append(candidate)

    created = [
        ViewCreditCode(
            code=code,
            remaining_views=views,
            claimed=False,
            claimed_by=None,
            enabled=enabled,
            payment_state=CodePaymentState.NOT_PAID,
            issued_by=issued_by,
        )
        for code in codes
    ]
    session.add_all(created)
    session.flush()
    logger.info("issued %s view codes worth %s views each (by %s)", count, views, issued_by)
    return created


def update_code(
    session: Session,
    *,
    vvc_id: int,
    remaining_views: Optional[int] = None,
    enabled: Optional[bool] = None,
    payment_state: Optional[CodePaymentState] = None,
) -> ViewCreditCode:
    if remaining_views is None and enabled is None and payment_state is None:
        raise InvalidState("No valid fields to update")
    if remaining_views is not None and remaining_views < 1:
        raise InvalidState("Number of views must be at least 1")

    record = _get_code(session, vvc_id)
    if remaining_views is not None:
        record.remaining_views = remaining_views
    if enabled is not None:
        record.enabled = enabled
    if payment_state is not None:
        record.payment_state = CodePaymentState(payment_state)
    session.flush()
    return record


def delete_code(session: Session, *, vvc_id: int) -> None:
    session.delete(_get_code(session, vvc_id))
    session.flush()


def list_codes(
    session: Session,
    *,
    search: Optional[str] = None,
    claimed: Optional[bool] = None,
    enabled: Optional[bool] = None,
    payment_state: Optional[CodePaymentState] = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[Sequence[ViewCreditCode], int]:
    """Return a page of codes and the total number matching the filters."""

    criteria = []
    if search and search.strip():
        term = search.strip()
        criteria.append(or_(ViewCreditCode.code.startswith(term), ViewCreditCode.issued_by.contains(term)))
    if claimed is not None:
        criteria.append(ViewCreditCode.claimed.is_(claimed))
    if enabled is not None:
        criteria.append(ViewCreditCode.enabled.is_(enabled))
    if payment_state is not None:
        criteria.append(ViewCreditCode.payment_state == CodePaymentState(payment_state))

    total = session.execute(select(func.count(ViewCreditCode.vvc_id)).where(*criteria)).scalar_one()
    stmt = (
        select(ViewCreditCode)
        .where(*criteria)
        .order_by(ViewCreditCode.issued_at.desc(), ViewCreditCode.vvc_id.desc())
        .offset(offset)
        .limit(limit)
    )
    return session.execute(stmt).scalars().all(), total


def check_and_claim(session: Session, *, code: str, claimant_id: int, content_id: int) -> tuple[int, int]:
    """Claim a view code for ``claimant_id`` and bind it to the content item.

    The claimant who first claimed a code may check it again while views remain;
    anyone else gets :class:`AlreadyUsed`. Checking never spends a view.
    Returns ``(vvc_id, remaining_views)``.
    """

    get_student(session, claimant_id)
    content_service.get_content(session, content_id)

    claimed = session.execute(
        update(ViewCreditCode)
        .where(
            ViewCreditCode.code == code,
            ViewCreditCode.enabled.is_(True),
            ViewCreditCode.remaining_views > 0,
            or_(ViewCreditCode.claimed_by.is_(None), ViewCreditCode.claimed_by == claimant_id),
        )
        .values(claimed=True, claimed_by=claimant_id)
        .execution_options(synchronize_session=False)
    ).rowcount

    record = session.execute(
        select(ViewCreditCode).where(ViewCreditCode.code == code).execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if record is None:
        raise NotFound("View code not found")
    if not claimed:
        if not record.enabled:
            raise Disabled("View code is deactivated")
        logger.warning("student %s tried to use spent or foreign view code %s", claimant_id, record.vvc_id)
        raise AlreadyUsed("View code has already been used")

    content_service.bind_view_code(
        session, student_id=claimant_id, content_id=content_id, vvc_id=record.vvc_id
    )
    logger.info("student %s claimed view code %s for content %s", claimant_id, record.vvc_id, content_id)
    return record.vvc_id, record.remaining_views


def consume_on_finish(session: Session, *, vvc_id: int) -> bool:
    """Spend one view of the code; a code with no views left is left as is."""

    spent = session.execute(
        update(ViewCreditCode)
        .where(ViewCreditCode.vvc_id == vvc_id, ViewCreditCode.remaining_views > 0)
        .values(remaining_views=ViewCreditCode.remaining_views - 1)
        .execution_options(synchronize_session=False)
    ).rowcount
    record = session.execute(
        select(ViewCreditCode).where(ViewCreditCode.vvc_id == vvc_id).execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if record is None:
        raise NotFound(f"View code {vvc_id} not found")
    return bool(spent)


def record_content_event(session: Session, *, student_id: int, content_id: int, action: str) -> dict:
    """Handle a student opening (``view``) or completing (``finish``) a content item.

    Opening never spends anything. Finishing paid content spends one view of the
    bound code; finishing free content records free access once. Either way a
    finish marks attendance for the content's period at the remote center.
    """

    if action not in CONTENT_ACTIONS:
        raise InvalidState('Invalid action. Use "view" or "finish"')

    get_active_student(session, student_id, for_update=True)
    content = content_service.get_content(session, content_id)
    access = content_service.get_access(session, student_id=student_id, content_id=content_id)

    vvc_id = None
    if not content.free:
        if access is None or access.vvc_id is None:
            raise NotFound(f"Content {content_id} has not been unlocked by student {student_id}")
        vvc_id = access.vvc_id

    result = {"action": action, "vvc_id": vvc_id, "remaining_views": None, "attendance_marked": False}

    if action == "finish":
        if content.free:
            if content_service.grant_free_access(session, student_id=student_id, content_id=content_id):
                logger.info("granted free access to content %s for student %s", content_id, student_id)
        else:
            consume_on_finish(session, vvc_id=vvc_id)

        if content.period_key:
            ledger_service.set_attendance(
                session,
                student_id=student_id,
                period_key=PeriodKey.parse(content.period_key),
                attended=True,
                center=get_settings().remote_center_name,
            )
            result["attendance_marked"] = True

    if vvc_id is not None:
        result["remaining_views"] = _get_code(session, vvc_id).remaining_views
    return result
