"""
Domain exceptions for the settlement ledger.

These are raised by the services layer and carry the HTTP status the API
layer should answer with. They are kept free of FastAPI imports so the
ledger and optimizer stay usable outside a request.

Exception Hierarchy:
    LedgerError (base)
    ├── DataIntegrityError   500
    ├── ValidationError      422
    ├── AuthorizationError   403
    └── NotFoundError        404

There is no stale-state error: confirming an already confirmed settlement
(or declining a declined one) is a successful no-op.
"""


class LedgerError(Exception):
    """
    Base exception for all settlement ledger errors.

    Views can catch this single class and turn it into a response:

        try:
            settlement = confirm_settlement(settlement_id, user.id, db)
        except LedgerError as e:
            return JSONResponse({"detail": str(e)}, status_code=e.status_code)
    """

    status_code = 400


class DataIntegrityError(LedgerError):
    """
    Raised when upstream expense data breaks an assumed invariant.

    Examples are a split pointing at an expense that does not exist, or an
    expense paid by someone outside the trip roster. This is a bug in a
    collaborator, not something a user can fix.
    """

    status_code = 500


class ValidationError(LedgerError):
    """
    Raised when a settlement request is rejected before any write.

    Example:
        raise ValidationError("Settlement amount must be greater than zero")
    """

    status_code = 422


class AuthorizationError(LedgerError):
    """
    Raised when the acting user may not perform the action.

    Example:
        raise AuthorizationError("Only the payee may confirm this settlement")
    """

    status_code = 403


class NotFoundError(LedgerError):
    """Raised when a trip or settlement does not exist."""

    status_code = 404
