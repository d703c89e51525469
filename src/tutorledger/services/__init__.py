"""Service layer exports."""

from . import (
	activation_service,
	content_service,
	credit_service,
	history_service,
	ledger_service,
	reconcile_service,
	view_code_service,
)

__all__ = [
	"activation_service",
	"content_service",
	"credit_service",
	"history_service",
	"ledger_service",
	"reconcile_service",
	"view_code_service",
]
