"""Video view credit codes."""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from ..core.database import Base
from ..utils.datetime import utcnow


class CodePaymentState(str, enum.Enum):
    """Whether the code has been paid for by its buyer."""

    PAID = "PAID"
    NOT_PAID = "NOT_PAID"


class ViewCreditCode(Base):
    """Grants a bounded number of content views, bound to its first claimant."""

    __tablename__ = "view_credit_codes"
    __table_args__ = (
        UniqueConstraint("code", name="view_credit_codes_code_unique"),
        CheckConstraint("remaining_views >= 0", name="view_credit_codes_remaining_positive"),
    )

    vvc_id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String, nullable=False)
    remaining_views = Column(Integer, nullable=False)
    claimed = Column(Boolean, nullable=False, default=False)
    claimed_by = Column(Integer, ForeignKey("students.student_id", ondelete="SET NULL"))
    enabled = Column(Boolean, nullable=False, default=True)
    payment_state = Column(
        SAEnum(CodePaymentState, name="code_payment_state"),
        nullable=False,
        default=CodePaymentState.NOT_PAID,
    )
    issued_by = Column(String)
    issued_at = Column(DateTime, default=utcnow, nullable=False)
