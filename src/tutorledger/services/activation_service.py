"""Single-use account activation codes."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models import ActivationCode, Student
from ..utils.codes import activation_code
from ..utils.datetime import utcnow
from .errors import AlreadyActivated, Conflict, InvalidState, NotFound
from .student_directory import get_student

logger = logging.getLogger(__name__)

_MAX_GENERATION_ATTEMPTS = 20


def _unused_code(session: Session, taken: set[str] | None = None) -> str:
    taken = taken if taken is not None else set()
    for _ in range(_MAX_GENERATION_ATTEMPTS):
        candidate = activation_code()
        if candidate in taken:
            continue
        exists = session.execute(
            select(ActivationCode.owner_student_id).where(ActivationCode.code == candidate)
        ).scalar_one_or_none()
        if exists is None:
            taken.add(candidate)
            return candidate
    raise Conflict("Could not generate a unique activation code")


def _get_code(session: Session, owner_student_id: int) -> Optional[ActivationCode]:
    stmt = select(ActivationCode).where(ActivationCode.owner_student_id == owner_student_id)
    return session.execute(stmt).scalar_one_or_none()


def issue_code(session: Session, *, owner_student_id: int) -> tuple[ActivationCode, bool]:
    """Create an activation code for the student, or regenerate the existing one.

    Regenerating replaces the token and resets ``activated``. Returns the code
    and whether one already existed.
    """

    owner = get_student(session, owner_student_id)
    existing = _get_code(session, owner.student_id)
    code = _unused_code(session)

    if existing is not None:
        existing.code = code
        existing.activated = False
        existing.activated_at = None
        existing.issued_at = utcnow()
        session.flush()
        logger.info("regenerated activation code for student %s", owner.student_id)
        return existing, True

    record = ActivationCode(owner_student_id=owner.student_id, code=code, activated=False)
    session.add(record)
    session.flush()
    logger.info("issued activation code for student %s", owner.student_id)
    return record, False


def regenerate_code(session: Session, *, owner_student_id: int) -> ActivationCode:
    if _get_code(session, owner_student_id) is None:
        raise NotFound(f"Activation code for student {owner_student_id} not found")
    record, _ = issue_code(session, owner_student_id=owner_student_id)
    return record


def issue_codes_for_range(
    session: Session,
    *,
    first_id: int,
    last_id: int,
) -> tuple[list[ActivationCode], list[int]]:
    """Issue codes for every student id in the inclusive range that has none yet.

    Returns the created codes and the ids that already had one. Ids with no
    matching student are skipped.
    """

    if first_id < 1 or last_id < 1:
        raise InvalidState("Student ids must be positive")
    if first_id > last_id:
        raise InvalidState("first_id must be less than or equal to last_id")

    existing_ids = set(
        session.execute(
            select(ActivationCode.owner_student_id).where(
                ActivationCode.owner_student_id.between(first_id, last_id)
            )
        ).scalars()
    )
    student_ids = set(
        session.execute(
            select(Student.student_id).where(Student.student_id.between(first_id, last_id))
        ).scalars()
    )
    new_ids = sorted(student_ids - existing_ids)
    already_existed = sorted(existing_ids)

    if not new_ids:
        raise Conflict("All ids in the range already have activation codes")

    taken: set[str] = set()
    created = [
        ActivationCode(owner_student_id=student_id, code=_unused_code(session, taken), activated=False)
        for student_id in new_ids
    ]
    session.add_all(created)
    session.flush()
    logger.info("issued %s activation codes for ids %s..%s", len(created), first_id, last_id)
    return created, already_existed


def check_code(session: Session, *, owner_student_id: int, code: str) -> dict[str, bool]:
    """Report whether ``code`` matches the owner's activation code, without claiming it."""

    record = _get_code(session, owner_student_id)
    if record is None:
        return {"exists": False, "valid": False, "activated": False}
    return {"exists": True, "valid": record.code == code, "activated": bool(record.activated)}


def activate(session: Session, *, code: str, owner_student_id: Optional[int] = None) -> ActivationCode:
    """Claim an activation code exactly once.

    When ``owner_student_id`` is given the code must also belong to that student.
    """

    criteria = [ActivationCode.code == code]
    if owner_student_id is not None:
        criteria.append(ActivationCode.owner_student_id == owner_student_id)

    claimed = session.execute(
        update(ActivationCode)
        .where(*criteria, ActivationCode.activated.is_(False))
        .values(activated=True, activated_at=utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount

    record = session.execute(
        select(ActivationCode).where(*criteria).execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if record is None:
        raise NotFound("Activation code not found")
    if not claimed:
        raise AlreadyActivated("Activation code has already been used")

    logger.info("activated account for student %s", record.owner_student_id)
    return record


def list_codes(
    session: Session,
    *,
    owner_student_id: Optional[int] = None,
    activated: Optional[bool] = None,
    limit: int = 100,
    offset: int = 0,
) -> Sequence[ActivationCode]:
    stmt = select(ActivationCode).order_by(ActivationCode.owner_student_id.asc()).offset(offset).limit(limit)
    if owner_student_id is not None:
        stmt = stmt.where(ActivationCode.owner_student_id == owner_student_id)
    if activated is not None:
        stmt = stmt.where(ActivationCode.activated.is_(activated))
    return session.execute(stmt).scalars().all()


def delete_code(session: Session, *, owner_student_id: int) -> None:
    record = _get_code(session, owner_student_id)
    if record is None:
        raise NotFound(f"Activation code for student {owner_student_id} not found")
    session.delete(record)
    session.flush()
