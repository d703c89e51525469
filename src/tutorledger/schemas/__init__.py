"""Public schema exports."""

from .activation_code import (
	ActivationCodeCheck,
	ActivationCodeCreate,
	ActivationCodeIssued,
	ActivationCodeRangeCreate,
	ActivationCodeRangeResult,
	ActivationCodeRead,
	ActivationCodeStatus,
	ActivationRequest,
)
from .history import HistoryEntryRead
from .period import (
	AttendanceUpdate,
	CommentUpdate,
	HomeworkUpdate,
	MessageFlagUpdate,
	PeriodKeyIn,
	PeriodRecordRead,
	QuizUpdate,
	ScoreIn,
)
from .student import (
	ContentEventCreate,
	ContentEventResult,
	CreditAccountRead,
	CreditAccountUpdate,
	ProgressRead,
	ResetSummary,
	StudentSummary,
)
from .view_code import (
	ViewCodeBatchCreate,
	ViewCodeCheck,
	ViewCodeClaimResult,
	ViewCodePage,
	ViewCodeRead,
	ViewCodeUpdate,
)

__all__ = [
	"ActivationCodeCheck",
	"ActivationCodeCreate",
	"ActivationCodeIssued",
	"ActivationCodeRangeCreate",
	"ActivationCodeRangeResult",
	"ActivationCodeRead",
	"ActivationCodeStatus",
	"ActivationRequest",
	"AttendanceUpdate",
	"CommentUpdate",
	"ContentEventCreate",
	"ContentEventResult",
	"CreditAccountRead",
	"CreditAccountUpdate",
	"HistoryEntryRead",
	"HomeworkUpdate",
	"MessageFlagUpdate",
	"PeriodKeyIn",
	"PeriodRecordRead",
	"ProgressRead",
	"QuizUpdate",
	"ResetSummary",
	"ScoreIn",
	"StudentSummary",
	"ViewCodeBatchCreate",
	"ViewCodeCheck",
	"ViewCodeClaimResult",
	"ViewCodePage",
	"ViewCodeRead",
	"ViewCodeUpdate",
]
