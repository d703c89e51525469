"""Content catalog lookups and per-student access grants."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.database import insert_if_absent
from ..models import Content, ContentAccess, PeriodKey
from ..utils.datetime import utcnow
from .errors import NotFound


def add_content(
    session: Session,
    *,
    title: str,
    period_key: Optional[PeriodKey] = None,
    free: bool = False,
) -> Content:
    content = Content(title=title, period_key=period_key.encode() if period_key else None, free=free)
    session.add(content)
    session.flush()
    return content


def get_content(session: Session, content_id: int) -> Content:
    content = session.execute(select(Content).where(Content.content_id == content_id)).scalar_one_or_none()
    if content is None:
        raise NotFound(f"Content {content_id} not found")
    return content


def get_access(session: Session, *, student_id: int, content_id: int) -> Optional[ContentAccess]:
    stmt = select(ContentAccess).where(
        ContentAccess.student_id == student_id,
        ContentAccess.content_id == content_id,
    )
    return session.execute(stmt).scalar_one_or_none()


def bind_view_code(session: Session, *, student_id: int, content_id: int, vvc_id: int) -> ContentAccess:
    """Point the student's access to a content item at ``vvc_id``, replacing any earlier grant."""

    values = {"student_id": student_id, "content_id": content_id, "vvc_id": vvc_id, "free": False}
    if not insert_if_absent(session, ContentAccess, values, ["student_id", "content_id"]):
        session.execute(
            update(ContentAccess)
            .where(ContentAccess.student_id == student_id, ContentAccess.content_id == content_id)
            .values(vvc_id=vvc_id, free=False, granted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
    access = get_access(session, student_id=student_id, content_id=content_id)
    session.refresh(access)
    return access


def grant_free_access(session: Session, *, student_id: int, content_id: int) -> bool:
    """Record free access for the content; returns ``False`` if the student already had access."""

    values = {"student_id": student_id, "content_id": content_id, "vvc_id": None, "free": True}
    return bool(insert_if_absent(session, ContentAccess, values, ["student_id", "content_id"]))
