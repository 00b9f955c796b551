"""
Domain errors for the ledger and its collaborators.

They subclass HTTPException so services can keep the usual
``except HTTPException: raise`` shape and FastAPI renders them directly.
The ``detail`` is always ``{"code": ..., "message": ...}``.
"""
from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """Base class for rejected ledger operations."""

    code = "ledger_error"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(
            status_code=self.status_code_default,
            detail={"code": self.code, "message": message}
        )


class NotFoundError(LedgerError):
    """Referenced sale, purchase, product, supplier or customer does not exist."""

    code = "not_found"
    status_code_default = status.HTTP_404_NOT_FOUND


class InvalidStateError(LedgerError):
    """The record is not in a state that allows the operation."""

    code = "invalid_state"
    status_code_default = status.HTTP_409_CONFLICT


class ProtectedEntryError(LedgerError):
    """The initial ledger entry cannot be removed while later entries exist."""

    code = "protected_entry"
    status_code_default = status.HTTP_409_CONFLICT


class LedgerValidationError(LedgerError):
    code = "validation_error"
    status_code_default = status.HTTP_400_BAD_REQUEST
