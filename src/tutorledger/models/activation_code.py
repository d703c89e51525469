"""Single-use account activation codes."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class ActivationCode(Base):
    """One activation code per student; regenerating overwrites it."""

    __tablename__ = "activation_codes"
    __table_args__ = (UniqueConstraint("code", name="activation_codes_code_unique"),)

    owner_student_id = Column(
        Integer, ForeignKey("students.student_id", ondelete="CASCADE"), primary_key=True, autoincrement=False
    )
    code = Column(String, nullable=False)
    activated = Column(Boolean, nullable=False, default=False)
    issued_at = Column(DateTime, default=utcnow, nullable=False)
    activated_at = Column(DateTime)

    owner = relationship("Student", back_populates="activation_code")
