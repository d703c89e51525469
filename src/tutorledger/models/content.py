"""Online content catalog and per-student access grants."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class Content(Base):
    """A watchable content item mapped to the period it counts as attendance for."""

    __tablename__ = "contents"

    content_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    period_key = Column(String)
    free = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class ContentAccess(Base):
    """Binds a student's access to a content item, via a view code or free access."""

    __tablename__ = "content_access"
    __table_args__ = (
        UniqueConstraint("student_id", "content_id", name="content_access_student_content_unique"),
    )

    access_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False)
    content_id = Column(Integer, ForeignKey("contents.content_id", ondelete="CASCADE"), nullable=False)
    vvc_id = Column(Integer, ForeignKey("view_credit_codes.vvc_id", ondelete="SET NULL"))
    free = Column(Boolean, nullable=False, default=False)
    granted_at = Column(DateTime, default=utcnow, nullable=False)

    content = relationship("Content")
