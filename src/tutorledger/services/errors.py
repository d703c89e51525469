"""Domain errors raised by the ledger and code services."""


class LedgerRuleViolation(Exception):
    """Raised when a ledger or code rule rejects an operation."""

    status_code = 400

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class NotFound(LedgerRuleViolation):
    status_code = 404


class AccountDeactivated(LedgerRuleViolation):
    status_code = 403


class InvalidState(LedgerRuleViolation):
    status_code = 400


class MustAttendFirst(InvalidState):
    """The period must be attended before grading it."""

    status_code = 409


class InsufficientCredit(LedgerRuleViolation):
    status_code = 402


class AlreadyActivated(LedgerRuleViolation):
    status_code = 409


class AlreadyUsed(LedgerRuleViolation):
    status_code = 409


class Disabled(LedgerRuleViolation):
    status_code = 403


class Conflict(LedgerRuleViolation):
    status_code = 409
