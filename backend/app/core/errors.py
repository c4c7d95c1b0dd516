from fastapi import HTTPException


class GroupBudgetError(ValueError):
    """Base for every recoverable failure of a group budget operation.

    ``kind`` is stable and machine-readable; the message is for humans.
    """

    kind = "error"
    status_code = 400


class ValidationError(GroupBudgetError):
    kind = "validation"
    status_code = 422


class NotFound(GroupBudgetError):
    kind = "not_found"
    status_code = 404


class Forbidden(GroupBudgetError):
    kind = "forbidden"
    status_code = 403


class Conflict(GroupBudgetError):
    kind = "conflict"
    status_code = 409


class AlreadyMember(Conflict):
    kind = "already_member"


class InvalidState(GroupBudgetError):
    kind = "invalid_state"
    status_code = 409


class EmailMismatch(GroupBudgetError):
    kind = "email_mismatch"
    status_code = 403


class UnknownUser(GroupBudgetError):
    kind = "unknown_user"
    status_code = 422


class Unavailable(GroupBudgetError):
    """Ledger or directory call timed out or failed. Safe to retry."""

    kind = "unavailable"
    status_code = 503


def to_http_exception(exc: GroupBudgetError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"kind": exc.kind, "message": str(exc)},
    )
